"""Headless Chromium sessions backed by Playwright.

One browser process is shared by all sessions of the application. Each session is an
isolated browser context with a single page.
"""

import asyncio
import logging
from urllib.parse import urljoin

from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright

from sitefinder.configs import settings
from sitefinder.exceptions import SessionCreationError
from sitefinder.probe.constants import FAVICON_FALLBACK_PATH, FAVICON_SELECTOR

logger = logging.getLogger(__name__)


class PlaywrightSession:
    """A browser context and page, reusable across probes after a reset."""

    context: BrowserContext
    page: Page
    wait_until: str
    screenshot_quality: int
    _closed: bool

    def __init__(
        self,
        context: BrowserContext,
        page: Page,
        wait_until: str = "networkidle",
        screenshot_quality: int = 30,
    ) -> None:
        self.context = context
        self.page = page
        self.wait_until = wait_until
        self.screenshot_quality = screenshot_quality
        self._closed = False

    @property
    def usable(self) -> bool:
        """Whether the page is still open and its browser still connected."""
        browser = self.context.browser
        return (
            not self._closed
            and not self.page.is_closed()
            and (browser is None or browser.is_connected())
        )

    async def navigate(self, url: str) -> None:
        """Navigate to `url`. The deadline is enforced by the caller, so Playwright's own
        navigation timeout is disabled.
        """
        await self.page.goto(url, wait_until=self.wait_until, timeout=0)  # type: ignore [arg-type]

    async def title(self) -> str:
        """Return the page title."""
        return await self.page.title()

    async def favicon_url(self) -> str | None:
        """Return the favicon declared by the page, or the conventional `/favicon.ico`."""
        base_url = self.page.url
        handle = await self.page.query_selector(FAVICON_SELECTOR)
        if handle is not None:
            href = await handle.get_attribute("href")
            if href:
                return urljoin(base_url, href.strip())
        return urljoin(base_url, FAVICON_FALLBACK_PATH)

    async def screenshot(self) -> bytes:
        """Capture the viewport as a JPEG."""
        viewport = self.page.viewport_size or {
            "width": settings.probe.viewport_width,
            "height": settings.probe.viewport_height,
        }
        return await self.page.screenshot(
            type="jpeg",
            quality=self.screenshot_quality,
            clip={"x": 0, "y": 0, "width": viewport["width"], "height": viewport["height"]},
        )

    async def reset(self) -> None:
        """Clear cookies and park the page on a blank document."""
        await self.context.clear_cookies()
        await self.page.goto("about:blank")

    async def close(self) -> None:
        """Close the context and its page."""
        if self._closed:
            return
        self._closed = True
        await self.context.close()


class PlaywrightEngine:
    """Session factory that lazily starts Playwright and a shared Chromium browser."""

    headless: bool
    browser_args: list[str]
    viewport: dict[str, int]
    wait_until: str
    screenshot_quality: int
    _playwright: Playwright | None
    _browser: Browser | None
    _lock: asyncio.Lock

    def __init__(
        self,
        headless: bool = settings.probe.headless,
        browser_args: list[str] | None = None,
        viewport_width: int = settings.probe.viewport_width,
        viewport_height: int = settings.probe.viewport_height,
        wait_until: str = settings.probe.wait_until,
        screenshot_quality: int = settings.probe.screenshot_quality,
    ) -> None:
        self.headless = headless
        self.browser_args = (
            list(settings.probe.browser_args) if browser_args is None else browser_args
        )
        self.viewport = {"width": viewport_width, "height": viewport_height}
        self.wait_until = wait_until
        self.screenshot_quality = screenshot_quality
        self._playwright = None
        self._browser = None
        self._lock = asyncio.Lock()

    async def create(self) -> PlaywrightSession:
        """Create a new isolated session.

        Raises:
            - `SessionCreationError` if the browser can't be launched or a context can't
              be created.
        """
        try:
            browser = await self._get_browser()
            context = await browser.new_context(viewport=self.viewport)  # type: ignore [arg-type]
        except Exception as e:
            raise SessionCreationError(f"Failed to create browser session: {e}") from e

        # The context outlives a failed or cancelled page creation unless closed here.
        try:
            page = await context.new_page()
        except BaseException as e:
            await self._discard(context)
            if isinstance(e, Exception):
                raise SessionCreationError(f"Failed to create browser session: {e}") from e
            raise
        return PlaywrightSession(
            context,
            page,
            wait_until=self.wait_until,
            screenshot_quality=self.screenshot_quality,
        )

    async def aclose(self) -> None:
        """Close the browser and stop Playwright."""
        async with self._lock:
            if self._browser is not None:
                try:
                    await self._browser.close()
                except Exception as e:
                    logger.warning("Failed to close browser", extra={"error": str(e)})
                self._browser = None
            if self._playwright is not None:
                await self._playwright.stop()
                self._playwright = None
        logger.info("Browser engine stopped")

    async def _discard(self, context: BrowserContext) -> None:
        try:
            await asyncio.shield(context.close())
        except Exception as e:
            logger.warning("Failed to close browser context", extra={"error": str(e)})

    async def _get_browser(self) -> Browser:
        async with self._lock:
            if self._browser is not None and self._browser.is_connected():
                return self._browser
            if self._playwright is None:
                self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(
                headless=self.headless, args=self.browser_args
            )
            logger.info("Launched headless browser", extra={"args": self.browser_args})
            return self._browser
