"""
Importance Scorer.

A weighted sum over position, size, media, text, headings, tag semantics and
the catalog's high-value prior, capped to [0, 100]. There is no ground truth
for "importance", so the weights live in one versioned block and each factor
is its own function.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class ScoreWeights:
    version: str = "1"
    above_fold: float = 20.0
    relative_area: float = 30.0
    media: float = 15.0
    text_richness: float = 10.0
    text_saturation_chars: int = 500
    heading: float = 15.0
    semantic_tag: float = 10.0
    high_value: float = 20.0
    cap: float = 100.0


WEIGHTS = ScoreWeights()

SEMANTIC_TAGS = {"header", "section", "article", "main", "nav"}

# Recursive pass thresholds
KEEP_THRESHOLD = 40
FULL_DEPTH_THRESHOLD = 60


@dataclass
class ElementInfo:
    """Facts about one candidate node, as reported by scripts.ELEMENT_INFO."""
    tag: str
    rect: dict
    classes: list
    position: str = "static"
    text: str = ""
    text_length: int = 0
    has_heading: bool = False
    has_image: bool = False
    has_background: bool = False
    background_url: str | None = None
    excluded: bool = False
    path: str = ""

    @classmethod
    def from_raw(cls, raw: dict, rect: dict | None = None) -> "ElementInfo":
        return cls(
            tag=(raw.get("tag") or "").lower(),
            rect=rect or {},
            classes=list(raw.get("classes") or []),
            position=raw.get("position") or "static",
            text=raw.get("text") or "",
            text_length=int(raw.get("textLength") or 0),
            has_heading=bool(raw.get("hasHeading")),
            has_image=bool(raw.get("hasImage")),
            excluded=bool(raw.get("excluded")),
            path=raw.get("path") or "",
        )


def above_fold_factor(rect: dict, viewport_height: float, weights: ScoreWeights = WEIGHTS) -> float:
    if viewport_height <= 0:
        return 0.0
    return max(0.0, 1 - rect.get("y", 0) / viewport_height) * weights.above_fold


def area_factor(rect: dict, viewport_width: float, viewport_height: float,
                weights: ScoreWeights = WEIGHTS) -> float:
    viewport_area = viewport_width * viewport_height
    if viewport_area <= 0:
        return 0.0
    area = rect.get("width", 0) * rect.get("height", 0)
    return area / viewport_area * weights.relative_area


def media_factor(info: ElementInfo, weights: ScoreWeights = WEIGHTS) -> float:
    return weights.media if (info.has_image or info.has_background) else 0.0


def text_factor(text_length: int, weights: ScoreWeights = WEIGHTS) -> float:
    return min(1.0, text_length / weights.text_saturation_chars) * weights.text_richness


def heading_factor(info: ElementInfo, weights: ScoreWeights = WEIGHTS) -> float:
    return weights.heading if info.has_heading else 0.0


def semantic_factor(tag: str, weights: ScoreWeights = WEIGHTS) -> float:
    return weights.semantic_tag if tag in SEMANTIC_TAGS else 0.0


def score(info: ElementInfo, viewport_width: float, viewport_height: float,
          is_high_value: bool = False, weights: ScoreWeights = WEIGHTS) -> float:
    """Importance of a node in [0, 100]. Deterministic for a given DOM state."""
    total = (
        above_fold_factor(info.rect, viewport_height, weights)
        + area_factor(info.rect, viewport_width, viewport_height, weights)
        + media_factor(info, weights)
        + text_factor(info.text_length, weights)
        + heading_factor(info, weights)
        + semantic_factor(info.tag, weights)
        + (weights.high_value if is_high_value else 0.0)
    )
    return round(max(0.0, min(weights.cap, total)), 2)
