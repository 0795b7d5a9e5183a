"""
Narrow capability interface between the extraction pipeline and the browser.

The pipeline only ever talks to a PageSession. PlaywrightPageSession is the
production implementation; anything with the same methods (e.g. an in-memory
fake in tests) can stand in for it.
"""

import asyncio
from typing import Any, Optional, Protocol

from loguru import logger
from playwright.async_api import ElementHandle, Page, Route

from component_extractor.errors import NavigationError


class PageSession(Protocol):
    url: str

    async def goto(self, url: str, timeout_ms: int) -> None: ...

    async def query_all(self, selector: str, root: Any = None) -> list: ...

    async def evaluate(self, script: str, handle: Any = None, arg: Any = None) -> Any: ...

    async def bounding_box(self, handle: Any) -> Optional[dict]: ...

    async def screenshot(self, handle: Any) -> bytes: ...

    async def dispose(self, handle: Any) -> None: ...


class PlaywrightPageSession:
    """PageSession backed by one Playwright page."""

    def __init__(self, page: Page, blocked_resource_types: list[str] | None = None):
        self.page = page
        self.url = ""
        self.blocked_resource_types = set(blocked_resource_types or [])

    async def _handle_route(self, route: Route):
        """Abort requests for blocked resource types, pass everything else."""
        if route.request.resource_type in self.blocked_resource_types:
            await route.abort()
        else:
            await route.continue_()

    async def goto(self, url: str, timeout_ms: int) -> None:
        if self.blocked_resource_types:
            await self.page.route("**/*", self._handle_route)

        try:
            await self.page.goto(url, wait_until="networkidle", timeout=timeout_ms)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(f"[session] networkidle wait failed for {url}: {e}, retrying with domcontentloaded")
            try:
                await self.page.goto(url, wait_until="domcontentloaded", timeout=timeout_ms)
                await self.page.wait_for_timeout(1500)
            except asyncio.CancelledError:
                raise
            except Exception as e2:
                raise NavigationError(f"Failed to load {url}: {e2}") from e2

        self.url = self.page.url

    async def query_all(self, selector: str, root: ElementHandle | None = None) -> list:
        if root is not None:
            return await root.query_selector_all(selector)
        return await self.page.query_selector_all(selector)

    async def evaluate(self, script: str, handle: ElementHandle | None = None, arg: Any = None) -> Any:
        if handle is not None:
            return await handle.evaluate(script, arg)
        return await self.page.evaluate(script, arg)

    async def bounding_box(self, handle: ElementHandle) -> Optional[dict]:
        return await handle.bounding_box()

    async def screenshot(self, handle: ElementHandle) -> bytes:
        return await handle.screenshot(type="png")

    async def dispose(self, handle: ElementHandle) -> None:
        try:
            await handle.dispose()
        except Exception as e:
            # Handle already gone with its frame
            logger.debug(f"[session] dispose failed: {e}")
