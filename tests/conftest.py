"""Pytest configuration and fixtures."""
import asyncio
import io
import itertools
from contextlib import asynccontextmanager

import pytest
from PIL import Image

from component_extractor import scripts
from component_extractor.cache import ResultCache
from component_extractor.catalog import STATIC_CATALOG
from component_extractor.metrics import MetricsHistory


_ids = itertools.count(1)


def png_bytes(width=40, height=20, color=(200, 30, 30)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buf, format="PNG")
    return buf.getvalue()


class FakeElement:
    """A DOM node as the pipeline sees it through a PageSession."""

    def __init__(self, tag="div", rect=None, classes=(), text="", styles=None,
                 children=(), images=(), background="none", attrs=None):
        self.id = next(_ids)
        self.tag = tag
        self.rect = rect if rect is not None else {"x": 0, "y": 0, "width": 400, "height": 200}
        self.classes = list(classes)
        self.text = text
        self.styles = {"display": "block", "position": "static", "color": "rgb(0, 0, 0)"}
        self.styles.update(styles or {})
        self.styles["background-image"] = background
        self.images = list(images)
        self.attrs = dict(attrs or {})
        self.parent = None
        self.children = list(children)
        for child in self.children:
            child.parent = self

    def ancestors(self):
        node = self
        while node is not None:
            yield node
            node = node.parent

    def all_text(self) -> str:
        parts = [self.text] + [c.all_text() for c in self.children]
        return " ".join(p for p in parts if p)

    def has_image(self) -> bool:
        return bool(self.images) or self.tag == "img" or any(c.has_image() for c in self.children)

    def info(self, exclude):
        excluded = False
        if exclude:
            tags = {t.strip() for t in exclude.split(",")}
            excluded = any(node.tag in tags for node in self.ancestors())
        text = self.all_text()
        return {
            "tag": self.tag,
            "classes": self.classes,
            "position": self.styles.get("position", "static"),
            "textLength": len(text),
            "text": text[:200],
            "hasHeading": any(node.tag in ("h1", "h2", "h3") for node in self._walk()),
            "hasImage": self.has_image(),
            "excluded": excluded,
            "path": f"node:{self.id}",
        }

    def _walk(self):
        yield self
        for child in self.children:
            yield from child._walk()

    def snapshot(self, props):
        attrs = dict(self.attrs)
        if self.classes:
            attrs["class"] = " ".join(self.classes)
        children = [{"text": self.text}] if self.text else []
        for image in self.images:
            children.append({
                "tag": "img",
                "attrs": {"src": image["src"], "alt": image.get("alt", "")},
                "styles": {},
                "children": [],
                "natural": {"width": image.get("width", 0), "height": image.get("height", 0)},
            })
        children.extend(child.snapshot(props) for child in self.children)
        return {
            "tag": self.tag,
            "attrs": attrs,
            "styles": {p: v for p, v in self.styles.items() if p in props},
            "children": children,
        }


class FakePageSession:
    """In-memory PageSession. Selectors resolve through an explicit table."""

    def __init__(self, url="https://example.com/"):
        self.url = ""
        self.final_url = url
        self.selectors: dict[str, list[FakeElement]] = {}
        self.failing_selectors: set[str] = set()
        self.pattern_candidates: list[dict] = []
        self.pattern_error: Exception | None = None
        self.screenshot_error: Exception | None = None
        self.goto_error: Exception | None = None
        self.goto_delay = 0.0
        self.goto_calls = 0
        self.disposed = 0

    def on_type(self, component_type: str, elements: list[FakeElement]):
        entry = next(e for e in STATIC_CATALOG if e.type == component_type)
        self.selectors[entry.selector] = elements

    async def goto(self, url, timeout_ms):
        self.goto_calls += 1
        if self.goto_delay:
            await asyncio.sleep(self.goto_delay)
        if self.goto_error is not None:
            raise self.goto_error
        self.url = self.final_url

    async def query_all(self, selector, root=None):
        if selector in self.failing_selectors:
            raise RuntimeError(f"bad selector {selector}")
        if root is not None:
            return list(root.children)
        return list(self.selectors.get(selector, []))

    async def evaluate(self, script, handle=None, arg=None):
        if script is scripts.ELEMENT_INFO:
            return handle.info(arg)
        if script is scripts.CAPTURE_STYLES:
            return {p: handle.styles[p] for p in arg if p in handle.styles}
        if script is scripts.COLLECT_IMAGES:
            return {"foreground": [img for node in handle._walk() for img in node.images], "backgrounds": []}
        if script is scripts.SNAPSHOT_TREE:
            return handle.snapshot(set(arg["props"]))
        if script is scripts.MATCHING_RULES:
            return []
        if script is scripts.PATTERN_CANDIDATES:
            if self.pattern_error is not None:
                raise self.pattern_error
            return self.pattern_candidates
        if script is scripts.PAGE_CONTEXT:
            return {"background-color": "rgb(255, 255, 255)"}
        raise AssertionError("unexpected script")

    async def bounding_box(self, handle):
        return handle.rect

    async def screenshot(self, handle):
        if self.screenshot_error is not None:
            raise self.screenshot_error
        return png_bytes()

    async def dispose(self, handle):
        self.disposed += 1


class FakeSessionFactory:
    def __init__(self, page: FakePageSession):
        self.page = page
        self.opened = 0
        self.closed = 0

    @asynccontextmanager
    async def __call__(self):
        self.opened += 1
        try:
            yield self.page
        finally:
            self.closed += 1


@pytest.fixture
def page():
    return FakePageSession()


@pytest.fixture
def session_factory(page):
    return FakeSessionFactory(page)


@pytest.fixture
def cache():
    return ResultCache(ttl_seconds=300)


@pytest.fixture
def history():
    return MetricsHistory(size=10)
