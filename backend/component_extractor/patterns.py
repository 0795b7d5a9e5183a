"""
Pattern Detector.

Finds repeated sibling structures (grids, flex rows, lists) that the static
catalog has no selector for and turns each into a synthetic catalog entry.
The browser reports candidate containers and their children's boxes; the
repetition rules are applied here.
"""

import re
from collections import Counter

from loguru import logger

from component_extractor import scripts
from component_extractor.catalog import CatalogEntry, DYNAMIC_MAX_INSTANCES, DYNAMIC_PRIORITY


MIN_CHILDREN = 3
DOMINANT_TAG_RATIO = 0.7
SIZE_TOLERANCE = 0.3
SAMPLE_SIZE = 10
MAX_CONTAINERS = 200
MAX_PATTERNS = 20

LIST_TAGS = {"ul", "ol", "dl"}
_LAYOUT_DISPLAY = re.compile(r"grid|flex")
_CLASS_HINT = re.compile(r"(list|grid|cards?|items|products|gallery|tiles)", re.IGNORECASE)


def _is_layout_container(candidate: dict) -> bool:
    return bool(
        _LAYOUT_DISPLAY.search(candidate.get("display") or "")
        or _CLASS_HINT.search(candidate.get("className") or "")
    )


def _uniform_size(children: list[dict]) -> bool:
    """Every sampled child within SIZE_TOLERANCE of the mean width and height."""
    sample = children[:SAMPLE_SIZE]
    mean_w = sum(c.get("width", 0) for c in sample) / len(sample)
    mean_h = sum(c.get("height", 0) for c in sample) / len(sample)
    if mean_w <= 0 or mean_h <= 0:
        return False
    return all(
        abs(c.get("width", 0) - mean_w) <= SIZE_TOLERANCE * mean_w
        and abs(c.get("height", 0) - mean_h) <= SIZE_TOLERANCE * mean_h
        for c in sample
    )


def evaluate_candidate(candidate: dict) -> CatalogEntry | None:
    """Synthetic entry for one container, or None if it isn't a repetition."""
    children = candidate.get("children") or []
    if len(children) < MIN_CHILDREN or not candidate.get("selector"):
        return None

    dominant, count = Counter(c.get("tag") for c in children).most_common(1)[0]
    matching = [c for c in children if c.get("tag") == dominant]
    is_list = candidate.get("tag") in LIST_TAGS

    if not is_list:
        if not _is_layout_container(candidate):
            return None
        if count / len(children) < DOMINANT_TAG_RATIO:
            return None
        if not _uniform_size(matching):
            return None

    has_images = any(c.get("hasImage") for c in matching)
    return CatalogEntry(
        type="card-item" if has_images else "list-item",
        selector=f"{candidate['selector']} > {dominant}",
        priority=DYNAMIC_PRIORITY,
        max_instances=DYNAMIC_MAX_INSTANCES,
        dynamic=True,
    )


def detect_patterns(candidates: list[dict]) -> list[CatalogEntry]:
    entries = []
    seen = set()
    for candidate in candidates:
        entry = evaluate_candidate(candidate)
        if entry is None or entry.selector in seen:
            continue
        seen.add(entry.selector)
        entries.append(entry)
        if len(entries) >= MAX_PATTERNS:
            break
    return entries


async def find_dynamic_selectors(session) -> list[CatalogEntry]:
    """Run pattern detection against the live page."""
    candidates = await session.evaluate(scripts.PATTERN_CANDIDATES, None, MAX_CONTAINERS) or []
    entries = detect_patterns(candidates)
    logger.info(f"[patterns] {len(entries)} repeated patterns from {len(candidates)} containers")
    return entries
