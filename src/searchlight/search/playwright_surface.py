"""Browser surface backed by Playwright.

Requires the ``browser`` extra (``pip install 'searchlight[browser]'`` and
``playwright install chromium``). A headless browser cannot be shown to a
human, so CAPTCHA recovery only works with ``headless=False``; headless runs
wait out the verification deadline instead. A headed window is kept
minimized through the Chrome DevTools protocol and restored for verification.
"""

import asyncio
from typing import Any

from searchlight.config import Settings, get_settings
from searchlight.logging import get_logger
from searchlight.search.browser import BrowserSearchError, SurfaceEventHandler
from searchlight.search.providers import BRIDGE_OBJECT

logger = get_logger("searchlight.search.playwright")

_BINDING_NAME = "__searchlightPost"
_BRIDGE_INIT_SCRIPT = (
    f"window.{BRIDGE_OBJECT} = {{ postMessage: (data) => window.{_BINDING_NAME}(data) }};"
)


class BrowserUnavailableError(BrowserSearchError):
    """Raised when Playwright is not installed or the browser fails to start."""

    pass


class PlaywrightSurface:
    """A Chromium page driven through Playwright.

    Use as an async context manager, or call ``start``/``close``.
    """

    def __init__(
        self,
        headless: bool | None = None,
        user_agent: str | None = None,
        settings: Settings | None = None,
    ):
        self.settings = settings or get_settings()
        self.headless = self.settings.browser_headless if headless is None else headless
        self.user_agent = user_agent or self.settings.fetch_user_agent

        self._handler: SurfaceEventHandler | None = None
        self._playwright: Any = None
        self._browser: Any = None
        self._context: Any = None
        self._page: Any = None
        self._cdp: Any = None
        self._closing = False

    def attach(self, handler: SurfaceEventHandler) -> None:
        self._handler = handler

    async def start(self) -> None:
        """Launch the browser and open the page used for searches."""
        if self._page is not None:
            return
        try:
            from playwright.async_api import async_playwright
        except ImportError as e:
            raise BrowserUnavailableError(
                "Playwright is not installed. Install with: pip install 'searchlight[browser]'"
            ) from e

        try:
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(headless=self.headless)
            self._context = await self._browser.new_context(user_agent=self.user_agent)
            await self._context.expose_binding(_BINDING_NAME, self._on_post)
            await self._context.add_init_script(_BRIDGE_INIT_SCRIPT)
            self._page = await self._context.new_page()
        except Exception as e:
            await self.close()
            raise BrowserUnavailableError(f"Failed to start browser: {e}") from e

        self._page.on("load", lambda _page: self._emit_load())
        self._page.on("close", lambda _page: self._emit_dismissed())
        if not self.headless:
            # The window stays out of the way until a CAPTCHA needs a human
            try:
                await self.set_visible(False)
            except Exception as e:
                logger.warning("Could not minimize browser window", error=str(e))
        logger.info("Browser surface started", headless=self.headless)

    async def close(self) -> None:
        """Shut the browser down."""
        self._closing = True
        try:
            if self._browser is not None:
                await self._browser.close()
            if self._playwright is not None:
                await self._playwright.stop()
        finally:
            self._browser = None
            self._playwright = None
            self._context = None
            self._page = None
            self._cdp = None
            self._closing = False

    async def __aenter__(self) -> "PlaywrightSurface":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def load_url(self, url: str) -> None:
        await self.start()
        try:
            await self._page.goto(url, wait_until="domcontentloaded")
        except Exception as e:
            if self._handler is not None:
                self._handler.handle_error(str(e))
            raise

    async def execute_script(self, script: str) -> None:
        if self._page is None:
            raise BrowserUnavailableError("Browser surface is not started")
        await self._page.evaluate(script)

    async def set_visible(self, visible: bool) -> None:
        """Restore the browser window for verification, or minimize it again."""
        if self._page is None:
            return
        if self.headless:
            if visible:
                logger.warning(
                    "Verification required but the browser is headless; "
                    "set BROWSER_HEADLESS=false to solve CAPTCHAs"
                )
            return

        if self._cdp is None:
            self._cdp = await self._context.new_cdp_session(self._page)
        window = await self._cdp.send("Browser.getWindowForTarget")
        await self._cdp.send(
            "Browser.setWindowBounds",
            {"windowId": window["windowId"], "bounds": {"windowState": "normal" if visible else "minimized"}},
        )
        if visible:
            await self._page.bring_to_front()
        logger.debug("Browser window toggled", visible=visible)

    def _on_post(self, _source: Any, data: str) -> None:
        if self._handler is not None:
            self._handler.handle_message(data)

    def _emit_load(self) -> None:
        if self._handler is not None:
            # Let the goto() call settle before extraction starts
            asyncio.get_running_loop().call_soon(self._handler.handle_load_finished)

    def _emit_dismissed(self) -> None:
        if self._handler is not None and not self._closing:
            self._handler.handle_dismissed()
