"""
Traversal Controller: the extract() entry point.

idle -> cache check -> load page -> pattern detection -> selector pass
     -> recursive pass (optional) -> sort -> metrics -> cache

Duplicates are rejected as components are built, so they never use up the
max_components budget.

Per-element and per-selector failures are recorded and skipped; only invalid
input, navigation failure, timeout, or an unexpected error escape, and the
browser session is closed on every path.
"""

import asyncio
import time
from dataclasses import dataclass, field
from urllib.parse import urlparse

from loguru import logger

from component_extractor import scripts
from component_extractor.browser_pool import get_browser_pool
from component_extractor.cache import ResultCache, get_result_cache
from component_extractor.catalog import CatalogEntry, classify, exclusion_for, high_value_types, select_entries
from component_extractor.config import DeploymentProfile, Settings, get_settings
from component_extractor.dedup import FingerprintIndex
from component_extractor.errors import ExtractionError, ExtractionTimeoutError, InvalidURLError
from component_extractor.image_utils import screenshot_to_data_uri
from component_extractor.images import collect_images, has_background
from component_extractor.metrics import ErrorLog, MetricsHistory, build_metrics, get_metrics_history
from component_extractor.models import (
    ComponentMetadata,
    Dimensions,
    ExtractedComponent,
    ExtractionOptions,
    ExtractionResult,
    Position,
)
from component_extractor.patterns import find_dynamic_selectors
from component_extractor.scoring import FULL_DEPTH_THRESHOLD, KEEP_THRESHOLD, ElementInfo, score
from component_extractor.serializer import clean_html, serialize
from component_extractor.styles import capture_styles


# Ordered fallbacks for the root of the recursive pass
MAIN_CONTENT_SELECTORS = [
    "main",
    "#main",
    "#content",
    "article",
    ".main-content",
    '[role="main"]',
    "#root",
    "#__next",
    "#app",
    ".content",
    "body > div:only-child",
    "body > div",
    "body",
]
CHILD_SELECTOR = ":scope > :not(script):not(style):not(link):not(meta):not(noscript):not(template)"

# Children of low-importance nodes get at most this many more levels
LOW_IMPORTANCE_DEPTH_CAP = 1
NAME_TEXT_LENGTH = 40


@dataclass(frozen=True)
class ResolvedOptions:
    max_components: int
    component_types: tuple[str, ...] | None
    skip_screenshots: bool
    max_depth: int
    timeout_ms: int
    extract_main_content: bool
    dynamic_scoring: bool
    min_component_size: int


def resolve_options(options: ExtractionOptions, profile: DeploymentProfile) -> ResolvedOptions:
    """Fill unset options from the deployment profile."""
    return ResolvedOptions(
        max_components=options.max_components or profile.max_components,
        component_types=tuple(options.component_types) if options.component_types else None,
        skip_screenshots=(
            profile.skip_screenshots if options.skip_screenshots is None else options.skip_screenshots
        ),
        max_depth=options.max_depth,
        timeout_ms=options.timeout or profile.timeout_ms,
        extract_main_content=options.extract_main_content,
        dynamic_scoring=options.dynamic_scoring,
        min_component_size=profile.min_component_size,
    )


def validate_url(url: str):
    parsed = urlparse(url or "")
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise InvalidURLError("Invalid URL format. Must start with http or https.")


def component_name(component_type: str, text: str, index: int) -> str:
    label = component_type.replace("-", " ").title()
    snippet = " ".join((text or "").split())
    if not snippet:
        return f"{label} {index}"
    if len(snippet) > NAME_TEXT_LENGTH:
        snippet = snippet[:NAME_TEXT_LENGTH].rstrip() + "…"
    return f"{label}: {snippet}"


def next_depth(remaining: int, importance: float) -> int:
    """Levels still open below a node the recursive pass just visited."""
    if importance > FULL_DEPTH_THRESHOLD:
        return remaining - 1
    return min(remaining - 1, LOW_IMPORTANCE_DEPTH_CAP)


def worth_keeping(info: ElementInfo, importance: float) -> bool:
    return info.has_image or info.has_background or importance > KEEP_THRESHOLD


@dataclass
class RunState:
    components: list[ExtractedComponent] = field(default_factory=list)
    seen_paths: set[str] = field(default_factory=set)
    # (path, type) pairs; one node may surface once per catalog type
    seen_typed: set[tuple[str, str]] = field(default_factory=set)
    inspected_paths: set[str] = field(default_factory=set)
    fingerprints: FingerprintIndex = field(default_factory=FingerprintIndex)
    errors: ErrorLog = field(default_factory=ErrorLog)
    elements_detected: int = 0
    extraction_ms: float = 0.0


class ExtractionRun:
    """One pipeline against one page session."""

    def __init__(self, session, url: str, options: ResolvedOptions, settings: Settings, state: RunState):
        self.session = session
        self.url = url
        self.base_url = url
        self.options = options
        self.settings = settings
        self.state = state
        self.page_context: dict[str, str] = {}
        self.high_value = high_value_types()

    @property
    def full(self) -> bool:
        return len(self.state.components) >= self.options.max_components

    async def run(self):
        goto_timeout = min(self.settings.page_load_timeout, self.options.timeout_ms)
        await self.session.goto(self.url, goto_timeout)
        self.base_url = self.session.url or self.url

        try:
            context = await self.session.evaluate(scripts.PAGE_CONTEXT) or {}
            self.page_context = {f"page-{prop}": str(value) for prop, value in context.items() if value}
        except Exception as e:
            logger.debug(f"[extract] Page context unavailable: {e}")

        dynamic = []
        try:
            dynamic = await find_dynamic_selectors(self.session)
        except Exception as e:
            logger.warning(f"[extract] Pattern detection failed: {e}")
            self.state.errors.record("pattern_error", str(e), skipped=False)

        entries = select_entries(
            list(self.options.component_types) if self.options.component_types else None,
            dynamic,
        )
        for entry in entries:
            if self.full:
                break
            await self.selector_pass(entry)

        if self.options.extract_main_content and self.options.max_depth > 0 and not self.full:
            await self.recursive_pass()

    # ============================================================
    # Per-element pipeline
    # ============================================================

    async def inspect(self, handle, exclude: str | None = None) -> ElementInfo | None:
        """Visibility filter. None when the node can't be a component."""
        errors = self.state.errors
        state = self.state
        try:
            raw = await self.session.evaluate(scripts.ELEMENT_INFO, handle, exclude)
            if not raw:
                return None
            info = ElementInfo.from_raw(raw)
            if info.excluded:
                return None

            # A node reached by several selectors and the recursive pass counts once
            first_visit = info.path not in state.inspected_paths
            if first_visit:
                state.inspected_paths.add(info.path)
                state.elements_detected += 1

            rect = await self.session.bounding_box(handle)
            floor = self.options.min_component_size
            if not rect or rect.get("width", 0) < floor or rect.get("height", 0) < floor:
                if first_visit:
                    errors.record("too_small", f"<{info.tag}> below {floor}x{floor}px")
                return None
            if info.position == "fixed":
                if first_visit:
                    errors.record("fixed_position", f"<{info.tag}> is position: fixed")
                return None

            info.rect = rect
            background = await has_background(self.session, handle, self.base_url)
            info.has_background = background.present
            info.background_url = background.url
            return info
        except Exception as e:
            logger.debug(f"[extract] Inspect failed: {e}")
            errors.record("processing_error", str(e))
            return None

    def importance(self, info: ElementInfo, component_type: str, is_high_value: bool) -> float:
        if not self.options.dynamic_scoring:
            return 0.0
        return score(
            info,
            self.settings.viewport_width,
            self.settings.viewport_height,
            is_high_value=is_high_value or component_type in self.high_value,
        )

    async def build(self, handle, info: ElementInfo, component_type: str,
                    importance: float) -> ExtractedComponent | None:
        errors = self.state.errors
        try:
            styles = await capture_styles(self.session, handle)
            fragment = await serialize(
                self.session, handle, info.rect,
                base_url=self.base_url,
                max_nodes=self.settings.max_tree_nodes,
                collect_rules=self.settings.collect_stylesheet_rules,
            )
            if not fragment.html.strip():
                errors.record("empty_html", f"<{info.tag}> serialized to nothing")
                return None
            images = await collect_images(self.session, handle, self.base_url)
        except Exception as e:
            logger.debug(f"[extract] Build failed for <{info.tag}>: {e}")
            errors.record("processing_error", str(e))
            return None

        screenshot = ""
        if not self.options.skip_screenshots:
            try:
                screenshot = screenshot_to_data_uri(await self.session.screenshot(handle))
            except Exception as e:
                logger.debug(f"[extract] Screenshot failed for <{info.tag}>: {e}")
                errors.record("screenshot_error", str(e), skipped=False)

        component = ExtractedComponent(
            type=component_type,
            name=component_name(component_type, info.text, len(self.state.components) + 1),
            html=fragment.html,
            clean_html=clean_html(fragment.html),
            screenshot=screenshot,
            styles={**styles, **self.page_context},
            metadata=ComponentMetadata(
                tag_name=info.tag,
                classes=info.classes,
                dimensions=Dimensions(width=round(info.rect["width"]), height=round(info.rect["height"])),
                position=Position(x=info.rect.get("x", 0), y=info.rect.get("y", 0)),
                importance_score=importance,
                has_background_image=info.has_background,
                background_image_url=info.background_url,
                images=images,
                text_length=info.text_length,
                source_url=self.base_url,
            ),
        )
        self.state.seen_paths.add(info.path)
        self.state.seen_typed.add((info.path, component_type))
        # Duplicates are dropped here so they never use up the budget
        if not self.state.fingerprints.admit(component):
            logger.debug(f"[extract] Duplicate {component_type} <{info.tag}> dropped")
            return None
        self.state.components.append(component)
        return component

    async def _dispose(self, handles):
        for handle in handles:
            await self.session.dispose(handle)

    # ============================================================
    # Selector pass
    # ============================================================

    async def selector_pass(self, entry: CatalogEntry):
        try:
            handles = await self.session.query_all(entry.selector)
        except Exception as e:
            logger.warning(f"[extract] Selector {entry.selector!r} failed: {e}")
            self.state.errors.record("selector_error", f"{entry.selector}: {e}", skipped=False)
            return

        taken = 0
        disposed = 0
        batch_size = max(1, self.settings.batch_size)
        try:
            for start in range(0, len(handles), batch_size):
                batch = handles[start:start + batch_size]
                for handle in batch:
                    if self.full or (entry.max_instances and taken >= entry.max_instances):
                        break
                    info = await self.inspect(handle, entry.exclude)
                    if info is None or (info.path, entry.type) in self.state.seen_typed:
                        continue
                    importance = self.importance(info, entry.type, entry.is_high_value)
                    if await self.build(handle, info, entry.type, importance):
                        taken += 1
                # Batches only bound how many live handles exist at once
                await self._dispose(batch)
                disposed = start + len(batch)
                if self.full or (entry.max_instances and taken >= entry.max_instances):
                    break
        finally:
            await self._dispose(handles[disposed:])

        if taken:
            logger.debug(f"[extract] {entry.type}: {taken} from {entry.selector!r}")

    # ============================================================
    # Recursive pass
    # ============================================================

    async def find_main_root(self):
        for selector in MAIN_CONTENT_SELECTORS:
            try:
                handles = await self.session.query_all(selector)
            except Exception as e:
                logger.debug(f"[extract] Main-content selector {selector!r} failed: {e}")
                continue
            for i, handle in enumerate(handles):
                box = await self.session.bounding_box(handle)
                if box and box.get("height", 0) > 0:
                    await self._dispose(handles[:i] + handles[i + 1:])
                    logger.debug(f"[extract] Main content root: {selector}")
                    return handle
            await self._dispose(handles)
        return None

    async def children(self, handle) -> list:
        try:
            return await self.session.query_all(CHILD_SELECTOR, handle)
        except Exception as e:
            logger.debug(f"[extract] Child query failed: {e}")
            return []

    async def excluded_as(self, handle, component_type: str) -> bool:
        """Whether the catalog's exclusion rule for `component_type` rejects the node."""
        exclude = exclusion_for(component_type)
        if not exclude:
            return False
        try:
            raw = await self.session.evaluate(scripts.ELEMENT_INFO, handle, exclude)
        except Exception as e:
            logger.debug(f"[extract] Exclusion check failed: {e}")
            self.state.errors.record("processing_error", str(e))
            return True
        return bool(raw and raw.get("excluded"))

    async def recursive_pass(self):
        """Depth-first walk from the main content root over an explicit stack."""
        root = await self.find_main_root()
        if root is None:
            return

        wanted = set(self.options.component_types or ())
        stack = [(child, self.options.max_depth) for child in reversed(await self.children(root))]
        await self.session.dispose(root)
        visited = 0
        try:
            while stack and not self.full and visited < self.settings.max_recursive_nodes:
                handle, remaining = stack.pop()
                visited += 1
                try:
                    info = await self.inspect(handle)
                    if info is None:
                        continue

                    component_type = classify(info.tag, info.classes)
                    importance = self.importance(info, component_type, False)
                    if (
                        worth_keeping(info, importance)
                        and info.path not in self.state.seen_paths
                        and (not wanted or component_type in wanted)
                        and not await self.excluded_as(handle, component_type)
                    ):
                        await self.build(handle, info, component_type, importance)

                    below = next_depth(remaining, importance)
                    if below > 0:
                        for child in reversed(await self.children(handle)):
                            stack.append((child, below))
                finally:
                    await self.session.dispose(handle)
        finally:
            await self._dispose([handle for handle, _ in stack])

        logger.debug(f"[extract] Recursive pass visited {visited} nodes")


# ============================================================
# Entry point
# ============================================================

async def _run(url, options: ResolvedOptions, settings: Settings, state: RunState, session_factory):
    started = time.perf_counter()
    try:
        async with session_factory() as session:
            await ExtractionRun(session, url, options, settings, state).run()
    finally:
        state.extraction_ms = (time.perf_counter() - started) * 1000


async def extract(url: str, options: ExtractionOptions | None = None, session_factory=None,
                  cache: ResultCache | None = None, history: MetricsHistory | None = None) -> ExtractionResult:
    """
    Extract UI components from a live page.

    Raises InvalidURLError, NavigationError, ExtractionTimeoutError, or
    ExtractionError wrapping anything else.
    """
    started = time.perf_counter()
    validate_url(url)

    options = options or ExtractionOptions()
    settings = get_settings()
    resolved = resolve_options(options, settings.profile)
    cache = cache if cache is not None else get_result_cache()
    history = history if history is not None else get_metrics_history()
    session_factory = session_factory or get_browser_pool().session

    def elapsed_ms():
        return (time.perf_counter() - started) * 1000

    cached = await cache.get(url, options.cache_key())
    if cached is not None:
        logger.info(f"[extract] Cache hit for {url} ({len(cached)} components)")
        metrics = build_metrics(
            cached, url,
            extraction_time_ms=0.0,
            response_time_ms=elapsed_ms(),
            total_elements=len(cached),
            from_cache=True,
        )
        history.add(metrics)
        return ExtractionResult(components=cached, metrics=metrics)

    logger.info(f"[extract] Extracting {url} (budget={resolved.max_components}, timeout={resolved.timeout_ms}ms)")
    state = RunState()

    def failure_metrics():
        return build_metrics(
            [], url,
            extraction_time_ms=state.extraction_ms,
            response_time_ms=elapsed_ms(),
            total_elements=state.elements_detected,
            errors=state.errors,
        )

    try:
        await asyncio.wait_for(
            _run(url, resolved, settings, state, session_factory),
            timeout=resolved.timeout_ms / 1000,
        )
    except asyncio.TimeoutError:
        logger.error(f"[extract] Timed out after {resolved.timeout_ms}ms: {url}")
        raise ExtractionTimeoutError(
            f"Extraction timed out after {resolved.timeout_ms}ms", metrics=failure_metrics(),
        ) from None
    except ExtractionError as e:
        logger.error(f"[extract] {type(e).__name__}: {e}")
        if e.metrics is None:
            e.metrics = failure_metrics()
        raise
    except Exception as e:
        logger.error(f"[extract] Failed for {url}: {e}")
        raise ExtractionError(f"Failed to extract UI components: {e}", metrics=failure_metrics()) from e

    components = list(state.components)
    if resolved.dynamic_scoring:
        components.sort(key=lambda c: c.metadata.importance_score, reverse=True)
    components = components[:resolved.max_components]

    metrics = build_metrics(
        components, url,
        extraction_time_ms=state.extraction_ms,
        response_time_ms=elapsed_ms(),
        total_elements=state.elements_detected,
        errors=state.errors,
    )
    logger.info(
        f"[extract] {len(components)} components from {url} "
        f"({state.elements_detected} elements, {state.errors.failed} failed, "
        f"overall={metrics.overall_accuracy:.1f}%)"
    )

    await cache.set(url, options.cache_key(), components)
    history.add(metrics)
    return ExtractionResult(components=components, metrics=metrics)
