"""
Deduplicator: structural fingerprints over extracted components.

Two components with the same type, the same markup once class/id/style noise
is removed, the same size to the nearest 10px and the same leading text runs
are the same component. The first one seen wins, unless a component on either
side of the collision scores above ALWAYS_KEEP_SCORE, in which case both stay.
"""

import hashlib
import re

from component_extractor.models import ExtractedComponent


ALWAYS_KEEP_SCORE = 70
DIMENSION_BUCKET = 10
TEXT_RUNS = 3

_STYLE_BLOCK = re.compile(r"<style\b[^>]*>.*?</style\s*>", re.IGNORECASE | re.DOTALL)
_NOISE_ATTR = re.compile(r"""\s(?:class|id|style)\s*=\s*(?:"[^"]*"|'[^']*'|[^\s>]+)""", re.IGNORECASE)
_TEXT_RUN = re.compile(r">([^<>]{1,80})<")


def _bucket(value: float) -> int:
    return int(round(value / DIMENSION_BUCKET)) * DIMENSION_BUCKET


def normalize_html(html: str) -> str:
    normalized = _STYLE_BLOCK.sub("", html or "")
    normalized = _NOISE_ATTR.sub("", normalized)
    return re.sub(r"\s+", " ", normalized).strip()


def text_sample(html: str) -> list[str]:
    runs = []
    for match in _TEXT_RUN.finditer(html or ""):
        text = match.group(1).strip()
        if text:
            runs.append(text)
        if len(runs) >= TEXT_RUNS:
            break
    return runs


def fingerprint(component: ExtractedComponent) -> str:
    dims = component.metadata.dimensions
    normalized = normalize_html(component.html)
    parts = [
        component.type,
        normalized,
        f"{_bucket(dims.width)}x{_bucket(dims.height)}",
        "|".join(text_sample(normalized)),
    ]
    return hashlib.md5("\n".join(parts).encode()).hexdigest()


class FingerprintIndex:
    """Running dedup state, so collisions can be rejected as components arrive."""

    def __init__(self):
        # fingerprint -> whether a high-importance component already holds it
        self._seen: dict[str, bool] = {}

    def admit(self, component: ExtractedComponent) -> bool:
        fp = fingerprint(component)
        high = component.metadata.importance_score > ALWAYS_KEEP_SCORE
        if fp in self._seen and not high and not self._seen[fp]:
            return False
        self._seen[fp] = self._seen.get(fp, False) or high
        return True


def deduplicate(components: list[ExtractedComponent]) -> list[ExtractedComponent]:
    index = FingerprintIndex()
    return [component for component in components if index.admit(component)]
