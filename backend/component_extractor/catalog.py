"""
Selector Catalog: which CSS selectors produce which component types.

Lower priority runs first. `exclude` drops nodes that match it or sit inside
something that does (e.g. buttons that are really navigation items).
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class CatalogEntry:
    type: str
    selector: str
    priority: int
    exclude: str | None = None
    is_high_value: bool = False
    max_instances: int | None = None  # None = bounded only by the global budget
    dynamic: bool = False


FALLBACK_TYPE = "element"
DYNAMIC_PRIORITY = 2
DYNAMIC_MAX_INSTANCES = 10

STATIC_CATALOG = [
    CatalogEntry("navigation", 'nav, [role="navigation"], .navbar, .nav-bar', priority=1),
    CatalogEntry("hero", '.hero, [class*="hero"], .jumbotron, .banner', priority=1, is_high_value=True),
    CatalogEntry("headers", 'header, [role="banner"]', priority=1),
    CatalogEntry("carousel", '.carousel, .slider, .swiper, [class*="carousel"]', priority=2, is_high_value=True),
    CatalogEntry("product", '.product, [class*="product-card"], [itemtype*="Product"]', priority=2, is_high_value=True),
    CatalogEntry("pricing", '.pricing, [class*="pricing"]', priority=2, is_high_value=True),
    CatalogEntry("cards", '.card, [class*="card"]', priority=2),
    CatalogEntry("features", '.feature, [class*="feature"]', priority=3),
    CatalogEntry("testimonials", '.testimonial, [class*="testimonial"], blockquote', priority=3),
    CatalogEntry("forms", "form", priority=3),
    CatalogEntry("buttons", "button, .btn", priority=4, exclude="nav, header, footer"),
    CatalogEntry("sections", "section", priority=5),
    CatalogEntry("footer", 'footer, [role="contentinfo"]', priority=5),
]

DYNAMIC_TYPES = {"card-item", "list-item"}
KNOWN_TYPES = {entry.type for entry in STATIC_CATALOG} | DYNAMIC_TYPES | {FALLBACK_TYPE}

# Tag / class hints used to name nodes found by the recursive pass
_TAG_TYPES = {
    "nav": "navigation",
    "header": "headers",
    "footer": "footer",
    "form": "forms",
    "button": "buttons",
    "section": "sections",
    "blockquote": "testimonials",
}
_CLASS_HINTS = [
    ("hero", "hero"),
    ("carousel", "carousel"),
    ("slider", "carousel"),
    ("product", "product"),
    ("pricing", "pricing"),
    ("card", "cards"),
    ("feature", "features"),
    ("testimonial", "testimonials"),
]


def traversal_order(entries: list[CatalogEntry]) -> list[CatalogEntry]:
    """High-value entries first, then by priority. Stable otherwise."""
    return sorted(entries, key=lambda e: (not e.is_high_value, e.priority))


def select_entries(component_types: list[str] | None = None,
                   dynamic: list[CatalogEntry] | None = None) -> list[CatalogEntry]:
    """Static catalog plus detected patterns, filtered and ordered for traversal."""
    entries = list(STATIC_CATALOG) + list(dynamic or [])
    if component_types:
        wanted = set(component_types)
        entries = [e for e in entries if e.type in wanted]
    return traversal_order(entries)


def high_value_types() -> set[str]:
    return {e.type for e in STATIC_CATALOG if e.is_high_value}


def classify(tag: str, classes: list[str]) -> str:
    """Best catalog type for a node found outside the selector pass."""
    if tag in _TAG_TYPES:
        return _TAG_TYPES[tag]
    joined = " ".join(classes).lower()
    for hint, type_name in _CLASS_HINTS:
        if hint in joined:
            return type_name
    return FALLBACK_TYPE


def exclusion_for(component_type: str) -> str | None:
    """Exclusion selector the static catalog attaches to a type, if any."""
    for entry in STATIC_CATALOG:
        if entry.type == component_type and entry.exclude:
            return entry.exclude
    return None
