from component_extractor.errors import (
    ExtractionError,
    ExtractionTimeoutError,
    InvalidURLError,
    NavigationError,
)
from component_extractor.extractor import extract
from component_extractor.models import (
    ExtractedComponent,
    ExtractionMetrics,
    ExtractionOptions,
    ExtractionResult,
)

__all__ = [
    "extract",
    "ExtractedComponent",
    "ExtractionError",
    "ExtractionMetrics",
    "ExtractionOptions",
    "ExtractionResult",
    "ExtractionTimeoutError",
    "InvalidURLError",
    "NavigationError",
]
