"""Tests for the result cache."""

from component_extractor.cache import ResultCache
from component_extractor.models import ComponentMetadata, Dimensions, ExtractedComponent, Position


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def _components():
    return [ExtractedComponent(
        type="hero",
        name="Hero",
        html="<div>x</div>",
        clean_html="<div>x</div>",
        metadata=ComponentMetadata(
            tag_name="div",
            dimensions=Dimensions(width=10, height=10),
            position=Position(x=0, y=0),
            source_url="https://example.com/",
        ),
    )]


class TestResultCache:
    async def test_miss(self):
        cache = ResultCache()
        assert await cache.get("https://example.com/", "{}") is None

    async def test_hit_within_ttl(self):
        clock = FakeClock()
        cache = ResultCache(ttl_seconds=300, clock=clock)
        components = _components()
        await cache.set("https://example.com/", "{}", components)
        clock.now += 299
        assert await cache.get("https://example.com/", "{}") == components

    async def test_expired_entries_pruned(self):
        clock = FakeClock()
        cache = ResultCache(ttl_seconds=300, clock=clock)
        await cache.set("https://example.com/", "{}", _components())
        clock.now += 301
        assert await cache.get("https://example.com/", "{}") is None
        assert len(cache) == 0

    async def test_options_are_part_of_the_key(self):
        cache = ResultCache()
        await cache.set("https://example.com/", '{"max_depth":3}', _components())
        assert await cache.get("https://example.com/", '{"max_depth":1}') is None

    async def test_clear(self):
        cache = ResultCache()
        await cache.set("https://example.com/", "{}", _components())
        await cache.clear()
        assert len(cache) == 0
