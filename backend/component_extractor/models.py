"""
Data model for extraction requests and results.

Everything here is a pydantic model so the same objects are returned by
extract() and serialized by the HTTP layer without a second schema.
"""

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Request
# ---------------------------------------------------------------------------

class ExtractionOptions(BaseModel):
    """Caller options. Unset fields fall back to the deployment profile."""
    model_config = ConfigDict(extra="forbid", alias_generator=to_camel, populate_by_name=True)

    max_components: int | None = Field(default=None, ge=1)
    component_types: list[str] | None = None
    skip_screenshots: bool | None = None
    max_depth: int = Field(default=3, ge=0)
    timeout: int | None = Field(default=None, ge=1)  # milliseconds
    extract_main_content: bool = True
    dynamic_scoring: bool = True

    def cache_key(self) -> str:
        return self.model_dump_json()


# ---------------------------------------------------------------------------
# Components
# ---------------------------------------------------------------------------

class Dimensions(BaseModel):
    width: int
    height: int


class Position(BaseModel):
    x: float
    y: float


class ImageInfo(BaseModel):
    src: str
    alt: str = ""
    width: int = 0
    height: int = 0
    kind: str = "img"  # "img" or "background"


class ComponentMetadata(BaseModel):
    tag_name: str
    classes: list[str] = []
    dimensions: Dimensions
    position: Position
    importance_score: float = 0.0
    has_background_image: bool = False
    background_image_url: str | None = None
    images: list[ImageInfo] = []
    text_length: int = 0
    source_url: str
    extracted_at: str = Field(default_factory=_utc_now)


class ExtractedComponent(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: str
    name: str
    html: str
    clean_html: str
    screenshot: str = ""
    styles: dict[str, str] = {}
    metadata: ComponentMetadata


# ---------------------------------------------------------------------------
# Metrics
# ---------------------------------------------------------------------------

class ErrorRecord(BaseModel):
    type: str
    message: str
    count: int = 1


class ExtractionMetrics(BaseModel):
    url: str
    timestamp: str = Field(default_factory=_utc_now)

    # Time
    extraction_time_ms: float = 0.0
    response_time_ms: float = 0.0

    # Precision sub-scores, 0-100
    position_accuracy: float = 0.0
    dimension_accuracy: float = 0.0
    spacing_accuracy: float = 0.0
    color_accuracy: float = 0.0
    typography_accuracy: float = 0.0
    alignment_accuracy: float | None = None

    # Composites
    layout_accuracy: float = 0.0
    style_accuracy: float = 0.0
    content_accuracy: float = 0.0
    overall_accuracy: float = 0.0

    # Counters
    total_elements_detected: int = 0
    components_extracted: int = 0
    extraction_rate: float = 0.0
    failed_extractions: int = 0

    errors: list[ErrorRecord] = []
    from_cache: bool = False


class ExtractionResult(BaseModel):
    components: list[ExtractedComponent]
    metrics: ExtractionMetrics | None = None
