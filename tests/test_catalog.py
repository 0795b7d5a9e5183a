"""Tests for the selector catalog."""

from component_extractor.catalog import (
    FALLBACK_TYPE,
    KNOWN_TYPES,
    STATIC_CATALOG,
    CatalogEntry,
    classify,
    exclusion_for,
    high_value_types,
    select_entries,
)


class TestCatalog:
    def test_high_value_entries_first(self):
        entries = select_entries()
        flags = [e.is_high_value for e in entries]
        assert flags == sorted(flags, reverse=True)
        assert entries[0].type == "hero"

    def test_priority_order_within_group(self):
        rest = [e for e in select_entries() if not e.is_high_value]
        priorities = [e.priority for e in rest]
        assert priorities == sorted(priorities)

    def test_type_filter(self):
        entries = select_entries(["buttons", "footer"])
        assert {e.type for e in entries} == {"buttons", "footer"}

    def test_dynamic_entries_join_and_filter(self):
        dynamic = [CatalogEntry("card-item", "div.grid > article", priority=2, max_instances=10, dynamic=True)]
        assert dynamic[0] in select_entries(None, dynamic)
        assert select_entries(["card-item"], dynamic) == dynamic
        assert select_entries(["hero"], dynamic)[0].type == "hero"

    def test_buttons_exclude_navigation(self):
        buttons = next(e for e in STATIC_CATALOG if e.type == "buttons")
        assert "nav" in buttons.exclude

    def test_exclusion_for(self):
        assert exclusion_for("buttons") == "nav, header, footer"
        assert exclusion_for("cards") is None
        assert exclusion_for("no-such-type") is None

    def test_high_value_types(self):
        assert high_value_types() == {"hero", "carousel", "product", "pricing"}

    def test_classify(self):
        assert classify("nav", []) == "navigation"
        assert classify("div", ["Product-Tile"]) == "product"
        assert classify("div", ["image-slider"]) == "carousel"
        assert classify("div", ["wrapper"]) == FALLBACK_TYPE

    def test_known_types(self):
        assert {"card-item", "list-item", FALLBACK_TYPE} <= KNOWN_TYPES
