"""
Metrics Engine.

There is no independently rendered baseline to diff against, so fidelity is
measured as agreement between what was captured from the live node (computed
styles, bounding box, images, text) and what the fragment actually emits on
its root element. Each check passes inside its tolerance and earns linearly
decaying partial credit outside it.

Composition:
    layout  = 0.3*position + 0.3*dimension + 0.2*spacing + 0.2*alignment
              (0.375 / 0.375 / 0.25 when no component has alignment data)
    style   = 0.5*color + 0.5*typography
    overall = 0.4*layout + 0.4*style + 0.2*content
"""

import html as html_lib
import re
from collections import deque
from dataclasses import dataclass

from component_extractor.models import ErrorRecord, ExtractedComponent, ExtractionMetrics
from component_extractor.serializer import parse_style_attr


POSITION_TOLERANCE_PX = 2.0
DIMENSION_TOLERANCE_PCT = 1.0
SPACING_TOLERANCE_PX = 2.0
COLOR_TOLERANCE = 1
TYPOGRAPHY_TOLERANCE_PX = 0.5

PX_FALLOFF = 10.0  # points lost per px beyond tolerance
PCT_FALLOFF = 10.0  # points lost per percent beyond tolerance
COLOR_FALLOFF = 2.0  # points lost per channel unit beyond tolerance

SPACING_PROPERTIES = [
    "margin-top", "margin-right", "margin-bottom", "margin-left",
    "padding-top", "padding-right", "padding-bottom", "padding-left",
]
COLOR_PROPERTIES = ["color", "background-color"]
TYPOGRAPHY_PROPERTIES = ["font-size", "line-height", "letter-spacing"]
ALIGNMENT_PROPERTIES = ["display", "flex-direction", "justify-content", "align-items"]
ALIGNED_DISPLAYS = {"flex", "inline-flex", "grid", "inline-grid"}

_ROOT_TAG = re.compile(r"^\s*<[a-zA-Z][^\s/>]*([^>]*)>")
_STYLE_ATTR = re.compile(r"""\sstyle\s*=\s*(?:"([^"]*)"|'([^']*)')""", re.IGNORECASE)
_PX = re.compile(r"^\s*(-?\d+(?:\.\d+)?)(?:px)?\s*$")
_RGB = re.compile(r"rgba?\(\s*(\d+(?:\.\d+)?)[\s,]+(\d+(?:\.\d+)?)[\s,]+(\d+(?:\.\d+)?)")
_HEX = re.compile(r"^#([0-9a-f]{3}|[0-9a-f]{6})$", re.IGNORECASE)
_STYLE_BLOCK = re.compile(r"<style\b[^>]*>.*?</style\s*>", re.IGNORECASE | re.DOTALL)
_SCRIPT_BLOCK = re.compile(r"<script\b[^>]*>.*?</script\s*>", re.IGNORECASE | re.DOTALL)
_TAG = re.compile(r"<[^>]+>")
_IMG_TAG = re.compile(r"<img\b", re.IGNORECASE)


# ============================================================
# Value comparison
# ============================================================

def _px(value: str | None) -> float | None:
    match = _PX.match(value or "")
    return float(match.group(1)) if match else None


def _decay(excess: float, falloff: float) -> float:
    return max(0.0, 100.0 - excess * falloff)


def compare_length(expected: str | None, actual: str | None, tolerance: float) -> float:
    """Score two CSS lengths; keywords (auto, normal) must match exactly."""
    if actual is None:
        return 0.0
    e, a = _px(expected), _px(actual)
    if e is None or a is None:
        return 100.0 if (expected or "").strip() == actual.strip() else 0.0
    delta = abs(e - a)
    if delta <= tolerance:
        return 100.0
    return _decay(delta - tolerance, PX_FALLOFF)


def parse_color(value: str | None) -> tuple | None:
    value = (value or "").strip()
    match = _RGB.search(value)
    if match:
        return tuple(round(float(c)) for c in match.groups())
    match = _HEX.match(value)
    if match:
        digits = match.group(1)
        if len(digits) == 3:
            digits = "".join(c * 2 for c in digits)
        return tuple(int(digits[i:i + 2], 16) for i in (0, 2, 4))
    return None


def compare_color(expected: str | None, actual: str | None) -> float:
    if actual is None:
        return 0.0
    e, a = parse_color(expected), parse_color(actual)
    if e is None or a is None:
        return 100.0 if (expected or "").strip() == actual.strip() else 0.0
    delta = max(abs(x - y) for x, y in zip(e, a))
    if delta <= COLOR_TOLERANCE:
        return 100.0
    return _decay(delta - COLOR_TOLERANCE, COLOR_FALLOFF)


def _mean(values: list[float]) -> float | None:
    return sum(values) / len(values) if values else None


# ============================================================
# Per-component scores
# ============================================================

@dataclass
class ComponentScores:
    position: float
    dimension: float
    spacing: float
    color: float
    typography: float
    alignment: float | None
    content: float


def emitted_root_styles(html: str) -> dict:
    """Declarations on the fragment's root element, later ones winning."""
    root = _ROOT_TAG.match(html or "")
    if not root:
        return {}
    attr = _STYLE_ATTR.search(root.group(1))
    if not attr:
        return {}
    return parse_style_attr(html_lib.unescape(attr.group(1) or attr.group(2) or ""))


def fragment_text(html: str) -> str:
    text = _SCRIPT_BLOCK.sub("", _STYLE_BLOCK.sub("", html or ""))
    text = html_lib.unescape(_TAG.sub(" ", text))
    return re.sub(r"\s+", " ", text).strip()


def position_score(source: dict, emitted: dict) -> float:
    if source.get("position") in ("fixed", "absolute"):
        if emitted.get("position") != "relative":
            return 0.0
        expected = {"top": "0px", "left": "0px"}
    else:
        expected = {prop: source[prop] for prop in ("top", "left") if prop in source}
    if not expected:
        return 100.0
    return _mean([compare_length(v, emitted.get(p), POSITION_TOLERANCE_PX) for p, v in expected.items()])


def dimension_score(width: int, height: int, emitted: dict) -> float:
    scores = []
    for expected, prop in ((width, "width"), (height, "height")):
        actual = _px(emitted.get(prop))
        if actual is None:
            scores.append(0.0)
            continue
        pct = abs(actual - expected) / expected * 100 if expected else 0.0
        scores.append(100.0 if pct <= DIMENSION_TOLERANCE_PCT else _decay(pct - DIMENSION_TOLERANCE_PCT, PCT_FALLOFF))
    return _mean(scores)


def _property_score(source: dict, emitted: dict, props: list[str], compare) -> float:
    scores = [compare(source[p], emitted.get(p)) for p in props if p in source]
    score = _mean(scores)
    return 100.0 if score is None else score


def alignment_score(source: dict, emitted: dict) -> float | None:
    if source.get("display") not in ALIGNED_DISPLAYS:
        return None
    props = [p for p in ALIGNMENT_PROPERTIES if p in source]
    if not props:
        return None
    matches = sum(1 for p in props if (emitted.get(p) or "").strip() == source[p].strip())
    return matches / len(props) * 100.0


def content_score(component: ExtractedComponent) -> float:
    expected_text = component.metadata.text_length
    emitted_text = len(fragment_text(component.html))
    text_ratio = min(1.0, emitted_text / expected_text) if expected_text else 1.0

    expected_images = sum(1 for img in component.metadata.images if img.kind == "img")
    emitted_images = len(_IMG_TAG.findall(component.html or ""))
    image_ratio = min(1.0, emitted_images / expected_images) if expected_images else 1.0

    return 50.0 * text_ratio + 50.0 * image_ratio


def score_component(component: ExtractedComponent) -> ComponentScores:
    source = component.styles
    emitted = emitted_root_styles(component.html)
    dims = component.metadata.dimensions
    return ComponentScores(
        position=position_score(source, emitted),
        dimension=dimension_score(dims.width, dims.height, emitted),
        spacing=_property_score(
            source, emitted, SPACING_PROPERTIES,
            lambda e, a: compare_length(e, a, SPACING_TOLERANCE_PX),
        ),
        color=_property_score(source, emitted, COLOR_PROPERTIES, compare_color),
        typography=_property_score(
            source, emitted, TYPOGRAPHY_PROPERTIES,
            lambda e, a: compare_length(e, a, TYPOGRAPHY_TOLERANCE_PX),
        ),
        alignment=alignment_score(source, emitted),
        content=content_score(component),
    )


# ============================================================
# Composition
# ============================================================

def layout_accuracy(position: float, dimension: float, spacing: float,
                    alignment: float | None) -> float:
    if alignment is None:
        return 0.375 * position + 0.375 * dimension + 0.25 * spacing
    return 0.3 * position + 0.3 * dimension + 0.2 * spacing + 0.2 * alignment


def style_accuracy(color: float, typography: float) -> float:
    return 0.5 * color + 0.5 * typography


def overall_accuracy(layout: float, style: float, content: float) -> float:
    return 0.4 * layout + 0.4 * style + 0.2 * content


class ErrorLog:
    """Per-run failure records, aggregated by type."""

    def __init__(self):
        self._records: dict[str, ErrorRecord] = {}
        self.failed = 0

    def record(self, error_type: str, message: str, skipped: bool = True):
        if skipped:
            self.failed += 1
        existing = self._records.get(error_type)
        if existing:
            existing.count += 1
        else:
            self._records[error_type] = ErrorRecord(type=error_type, message=message[:300])

    def count(self, error_type: str) -> int:
        record = self._records.get(error_type)
        return record.count if record else 0

    def records(self) -> list[ErrorRecord]:
        return [record.model_copy() for record in self._records.values()]


def build_metrics(components: list[ExtractedComponent], url: str,
                  extraction_time_ms: float = 0.0, response_time_ms: float = 0.0,
                  total_elements: int = 0, errors: ErrorLog | None = None,
                  from_cache: bool = False) -> ExtractionMetrics:
    errors = errors or ErrorLog()
    metrics = ExtractionMetrics(
        url=url,
        extraction_time_ms=round(extraction_time_ms, 2),
        response_time_ms=round(response_time_ms, 2),
        total_elements_detected=total_elements,
        components_extracted=len(components),
        extraction_rate=round(len(components) / total_elements * 100, 2) if total_elements else 0.0,
        failed_extractions=errors.failed,
        errors=errors.records(),
        from_cache=from_cache,
    )
    if not components:
        return metrics

    scores = [score_component(c) for c in components]
    alignment = _mean([s.alignment for s in scores if s.alignment is not None])

    metrics.position_accuracy = round(_mean([s.position for s in scores]), 2)
    metrics.dimension_accuracy = round(_mean([s.dimension for s in scores]), 2)
    metrics.spacing_accuracy = round(_mean([s.spacing for s in scores]), 2)
    metrics.color_accuracy = round(_mean([s.color for s in scores]), 2)
    metrics.typography_accuracy = round(_mean([s.typography for s in scores]), 2)
    metrics.alignment_accuracy = round(alignment, 2) if alignment is not None else None

    metrics.layout_accuracy = round(layout_accuracy(
        metrics.position_accuracy, metrics.dimension_accuracy,
        metrics.spacing_accuracy, metrics.alignment_accuracy,
    ), 2)
    metrics.style_accuracy = round(style_accuracy(metrics.color_accuracy, metrics.typography_accuracy), 2)
    metrics.content_accuracy = round(_mean([s.content for s in scores]), 2)
    # Not rounded: must equal the blend of the stored composites exactly
    metrics.overall_accuracy = overall_accuracy(
        metrics.layout_accuracy, metrics.style_accuracy, metrics.content_accuracy,
    )
    return metrics


class MetricsHistory:
    """Most recent N metrics, newest first."""

    def __init__(self, size: int = 10):
        self._items: deque = deque(maxlen=size)

    def add(self, metrics: ExtractionMetrics):
        self._items.appendleft(metrics)

    def items(self) -> list[ExtractionMetrics]:
        return list(self._items)

    def clear(self):
        self._items.clear()

    def __len__(self):
        return len(self._items)


_history: MetricsHistory | None = None


def get_metrics_history() -> MetricsHistory:
    global _history
    if _history is None:
        from component_extractor.config import get_settings
        _history = MetricsHistory(size=get_settings().metrics_history_size)
    return _history
