"""
Bounded pool of headless browser sessions.

One Chromium process is launched lazily and shared. Each extraction gets its
own browser context + page, and at most `max_sessions` exist at once since
each one holds a full renderer's worth of memory. The context is always
closed when the session block exits, whatever the exit path.
"""
import asyncio
from contextlib import asynccontextmanager

from loguru import logger
from playwright.async_api import async_playwright

from component_extractor.config import get_settings
from component_extractor.page_session import PlaywrightPageSession


class BrowserPool:
    def __init__(self, max_sessions=2):
        self.max_sessions = max_sessions
        self.semaphore = asyncio.Semaphore(max_sessions)
        self.lock = asyncio.Lock()
        self._playwright = None
        self._browser = None
        self._active = 0

    async def _ensure_browser(self):
        async with self.lock:
            if self._browser is not None and self._browser.is_connected():
                return self._browser
            logger.info("[browser-pool] Launching headless Chromium")
            if self._playwright is None:
                self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(
                headless=True,
                args=[
                    "--no-sandbox",
                    "--disable-setuid-sandbox",
                    "--disable-dev-shm-usage",
                ],
            )
            return self._browser

    @asynccontextmanager
    async def session(self):
        """Yield a PlaywrightPageSession; the context is closed on exit."""
        settings = get_settings()
        async with self.semaphore:
            browser = await self._ensure_browser()
            context = await browser.new_context(
                viewport={"width": settings.viewport_width, "height": settings.viewport_height},
                user_agent=settings.user_agent,
            )
            self._active += 1
            logger.debug(f"[browser-pool] Session opened ({self._active}/{self.max_sessions} active)")
            try:
                page = await context.new_page()
                yield PlaywrightPageSession(page, settings.blocked_resource_types)
            finally:
                self._active -= 1
                try:
                    await context.close()
                except Exception as e:
                    logger.warning(f"[browser-pool] Context close failed: {e}")
                logger.debug(f"[browser-pool] Session closed ({self._active}/{self.max_sessions} active)")

    async def shutdown(self):
        """Close the shared browser. Call on process shutdown."""
        async with self.lock:
            try:
                if self._browser is not None:
                    await self._browser.close()
                if self._playwright is not None:
                    await self._playwright.stop()
            except Exception as e:
                logger.warning(f"[browser-pool] Shutdown error: {e}")
            finally:
                self._browser = None
                self._playwright = None

    @property
    def active(self) -> int:
        return self._active


_pool: BrowserPool | None = None


def get_browser_pool() -> BrowserPool:
    """Process-wide pool, created on first use."""
    global _pool
    if _pool is None:
        _pool = BrowserPool(max_sessions=get_settings().max_concurrent_sessions)
    return _pool
