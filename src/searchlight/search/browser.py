"""Browser-driven search: load an engine page, scrape it, recover from CAPTCHAs.

The executor drives a host-provided ``BrowserSurface``. The surface is
hidden while results are scraped and only shown when a human has to solve a
CAPTCHA. Host events (page loaded, script message, user dismissed the
surface, load error) are delivered to the executor through its ``handle_*``
methods, which the surface calls once ``attach`` has bound them.

Outcome precedence: every outcome (results, script error, host error,
dismissal) settles one future, and the first to settle wins. The future is
inspected before the cancellation token and before the deadline, so results
that arrived in the same loop iteration as a timeout or a cancel still win.
Dismissal after results have arrived is ignored.
"""

import asyncio
import json
from enum import Enum
from typing import Any, Protocol

from searchlight.cancellation import CancellationToken, SearchCancelled
from searchlight.config import Settings, get_settings
from searchlight.logging import get_logger
from searchlight.models import SearchEngine, SearchResultItem
from searchlight.search.providers import (
    MESSAGE_CAPTCHA,
    MESSAGE_ERROR,
    MESSAGE_LOG,
    MESSAGE_RESULTS,
    SearchProvider,
    get_provider,
)

logger = get_logger("searchlight.search.browser")


# =============================================================================
# Exceptions
# =============================================================================


class BrowserSearchError(Exception):
    """Base exception for browser search failures."""

    pass


class BrowserSearchTimeout(BrowserSearchError):
    """Raised when no outcome arrives before the session deadline."""

    pass


class CaptchaDismissed(BrowserSearchError, SearchCancelled):
    """Raised when the user closes the verification surface."""

    pass


class ExtractionError(BrowserSearchError):
    """Raised when the extraction script reports an error."""

    pass


# =============================================================================
# Surface protocol
# =============================================================================


class SurfaceEventHandler(Protocol):
    """Callbacks a browser surface invokes on the executor."""

    def handle_load_finished(self) -> None: ...

    def handle_message(self, data: str | dict[str, Any]) -> None: ...

    def handle_dismissed(self) -> None: ...

    def handle_error(self, message: str, code: int | str | None = None) -> None: ...


class BrowserSurface(Protocol):
    """Capabilities the executor needs from a browser host."""

    def attach(self, handler: SurfaceEventHandler) -> None:
        """Route host events to ``handler``."""
        ...

    async def load_url(self, url: str) -> None: ...

    async def execute_script(self, script: str) -> None: ...

    async def set_visible(self, visible: bool) -> None: ...


class SearchState(str, Enum):
    """Lifecycle of one search through the executor."""

    IDLE = "idle"
    LOADING = "loading"
    EXTRACTING = "extracting"
    CAPTCHA_PENDING = "captcha_pending"
    DONE = "done"
    FAILED = "failed"


# =============================================================================
# Executor
# =============================================================================


class BrowserSearchExecutor:
    """Runs engine searches through a single browser surface.

    Only one search uses the surface at a time: concurrent ``search`` calls
    queue on an internal lock and run in arrival order.
    """

    def __init__(
        self,
        surface: BrowserSurface,
        settings: Settings | None = None,
        *,
        retry_delays: list[float] | None = None,
        settle_delay: float | None = None,
        search_timeout: float | None = None,
        captcha_timeout: float | None = None,
    ):
        """Initialize the executor and attach it to the surface.

        Args:
            surface: Browser host to drive
            settings: Settings instance (uses global if not provided)
            retry_delays: Delays before each extraction attempt, in seconds
            settle_delay: Delay before re-extracting after a reload
            search_timeout: Deadline for a search that never hits a CAPTCHA
            captcha_timeout: Deadline once a CAPTCHA has been shown
        """
        self.settings = settings or get_settings()
        self.retry_delays = list(retry_delays or self.settings.browser_retry_delays)
        self.settle_delay = self.settings.browser_settle_delay if settle_delay is None else settle_delay
        self.search_timeout = search_timeout or self.settings.browser_search_timeout
        self.captcha_timeout = captcha_timeout or self.settings.browser_captcha_timeout

        self._surface = surface
        self._lock = asyncio.Lock()
        self._state = SearchState.IDLE
        self._outcome: asyncio.Future[list[SearchResultItem]] | None = None
        self._provider: SearchProvider | None = None
        self._attempts = 0
        self._deadline = 0.0
        self._visible = False
        self._show_requested = False
        self._extraction: asyncio.Task | None = None
        self._background: set[asyncio.Task] = set()

        surface.attach(self)

    @property
    def state(self) -> SearchState:
        return self._state

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    async def search(
        self,
        query: str,
        engine: SearchEngine = SearchEngine.GOOGLE,
        max_results: int | None = None,
        cancel: CancellationToken | None = None,
    ) -> list[SearchResultItem]:
        """Search an engine and return its result links.

        Args:
            query: Search query
            engine: Browser-scraped engine to use
            max_results: Maximum results to return (defaults to settings)
            cancel: Optional cancellation token

        Returns:
            list[SearchResultItem]: Results in page order

        Raises:
            SearchCancelled: If the token fires or the user dismisses a CAPTCHA
            BrowserSearchTimeout: If the session deadline passes
            BrowserSearchError: If loading or extraction fails
        """
        provider = get_provider(engine)
        limit = max_results or self.settings.browser_max_results

        if self._lock.locked():
            logger.info("Browser surface busy, queueing search", engine=engine.value)

        await self._acquire(cancel)
        try:
            results = await self._run(provider, query, cancel)
            return results[:limit]
        finally:
            self._lock.release()

    async def _acquire(self, cancel: CancellationToken | None) -> None:
        """Take the surface lock, giving up if the token fires while queued."""
        if cancel is None:
            await self._lock.acquire()
            return

        cancel.raise_if_cancelled()
        acquire = asyncio.ensure_future(self._lock.acquire())
        cancel_waiter = asyncio.ensure_future(cancel.wait())
        try:
            await asyncio.wait({acquire, cancel_waiter}, return_when=asyncio.FIRST_COMPLETED)
            # A cancel that lands together with the lock still aborts the search
            cancel.raise_if_cancelled()
        except BaseException:
            if acquire.done() and not acquire.cancelled():
                self._lock.release()
            else:
                acquire.cancel()
            raise
        finally:
            cancel_waiter.cancel()

    async def _run(
        self,
        provider: SearchProvider,
        query: str,
        cancel: CancellationToken | None,
    ) -> list[SearchResultItem]:
        loop = asyncio.get_running_loop()
        self._provider = provider
        self._outcome = loop.create_future()
        self._attempts = 0
        self._deadline = loop.time() + self.search_timeout
        self._state = SearchState.LOADING

        url = provider.build_search_url(query)
        logger.info("Starting browser search", engine=provider.engine.value, query=query)

        cancel_waiter = asyncio.ensure_future(cancel.wait()) if cancel is not None else None
        load = asyncio.ensure_future(self._load(url))
        try:
            results = await self._wait_for_outcome(cancel_waiter, load)
            self._state = SearchState.DONE
            logger.info("Browser search complete", engine=provider.engine.value, results=len(results))
            return results
        except BaseException:
            self._state = SearchState.FAILED
            raise
        finally:
            if cancel_waiter is not None:
                cancel_waiter.cancel()
            if not load.done():
                load.cancel()
            await asyncio.gather(load, return_exceptions=True)
            await self._reset()

    async def _load(self, url: str) -> None:
        try:
            await self._surface.load_url(url)
        except Exception as e:
            raise BrowserSearchError(f"Failed to load {url}: {e}") from e

    async def _wait_for_outcome(
        self,
        cancel_waiter: asyncio.Future | None,
        load: asyncio.Future,
    ) -> list[SearchResultItem]:
        loop = asyncio.get_running_loop()
        outcome = self._outcome

        while True:
            if outcome.done():
                return outcome.result()
            if load.done() and load.exception() is not None:
                raise load.exception()
            if cancel_waiter is not None and cancel_waiter.done():
                raise SearchCancelled("Search aborted by user")

            remaining = self._deadline - loop.time()
            if remaining <= 0:
                if self._state is SearchState.CAPTCHA_PENDING:
                    raise BrowserSearchTimeout(
                        f"CAPTCHA verification timeout after {self.captcha_timeout:g} seconds"
                    )
                raise BrowserSearchTimeout(f"Search timeout after {self.search_timeout:g} seconds")

            waiting: set[asyncio.Future] = {outcome}
            if not load.done():
                waiting.add(load)
            if cancel_waiter is not None:
                waiting.add(cancel_waiter)
            # The deadline can move while we wait, so re-check after each wake-up
            await asyncio.wait(waiting, timeout=remaining, return_when=asyncio.FIRST_COMPLETED)

    async def _reset(self) -> None:
        """Stop scheduled work and make sure the surface ends up hidden."""
        tasks = list(self._background)
        if self._extraction is not None:
            tasks.append(self._extraction)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        self._background.clear()
        self._extraction = None
        self._outcome = None
        self._provider = None

        if self._visible or self._show_requested:
            await self._set_visible(False)
        self._show_requested = False

    # =========================================================================
    # Host events
    # =========================================================================

    def handle_load_finished(self) -> None:
        """Page finished loading: schedule extraction."""
        if not self._active():
            return

        if self._state is SearchState.CAPTCHA_PENDING:
            # Reload after the user solved (or refreshed) the challenge
            logger.info("Page reloaded during verification, re-extracting")
            self._spawn(self._extract_after_settle())
            return

        if self._extraction is not None and not self._extraction.done():
            return
        self._extraction = asyncio.ensure_future(self._extract_with_backoff())

    def handle_message(self, data: str | dict[str, Any]) -> None:
        """Message posted by an extraction script."""
        if isinstance(data, str):
            try:
                data = json.loads(data)
            except json.JSONDecodeError as e:
                logger.debug("Ignoring undecodable surface message", error=str(e))
                return
        if not isinstance(data, dict):
            return

        kind = data.get("type")
        if kind == MESSAGE_LOG:
            logger.debug("Extraction script log", log=data.get("log"))
            return
        if not self._active():
            logger.debug("Ignoring message with no search in flight", type=kind)
            return

        if kind == MESSAGE_CAPTCHA:
            self._enter_captcha()
        elif kind == MESSAGE_ERROR:
            self._settle_error(ExtractionError(data.get("error") or "Unknown error"))
        elif kind == MESSAGE_RESULTS:
            results = self._provider.parse_results(data)
            captcha_detour = self._state is SearchState.CAPTCHA_PENDING
            if results or captcha_detour or self._attempts >= len(self.retry_delays):
                self._settle_results(results)
            else:
                logger.debug("Empty extraction, waiting for next attempt", attempt=self._attempts)

    def handle_dismissed(self) -> None:
        """The user closed the surface instead of solving the CAPTCHA."""
        if self._active():
            logger.info("User dismissed verification surface")
            self._visible = False
            self._settle_error(CaptchaDismissed("User cancelled CAPTCHA verification"))

    def handle_error(self, message: str, code: int | str | None = None) -> None:
        """The host failed to load the page."""
        if self._active():
            self._settle_error(BrowserSearchError(f"Browser error ({code or 'unknown'}): {message}"))

    # =========================================================================
    # Internals
    # =========================================================================

    def _active(self) -> bool:
        return self._outcome is not None and not self._outcome.done()

    def _settle_results(self, results: list[SearchResultItem]) -> None:
        if self._active():
            self._outcome.set_result(results)
            self._stop_extraction()

    def _settle_error(self, error: Exception) -> None:
        if self._active():
            self._outcome.set_exception(error)
            self._stop_extraction()

    def _enter_captcha(self) -> None:
        if self._state is not SearchState.CAPTCHA_PENDING:
            logger.warning("CAPTCHA required, showing browser surface")
            self._state = SearchState.CAPTCHA_PENDING
            self._deadline = asyncio.get_running_loop().time() + self.captcha_timeout
        self._stop_extraction()
        self._show_requested = True
        self._spawn(self._set_visible(True))

    def _stop_extraction(self) -> None:
        if self._extraction is not None and not self._extraction.done():
            current = asyncio.current_task()
            if self._extraction is not current:
                self._extraction.cancel()

    def _spawn(self, coro) -> None:
        task = asyncio.ensure_future(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _extract_with_backoff(self) -> None:
        """Inject the extraction script on a progressive schedule.

        Each attempt waits for its delay first; a settled outcome or a
        CAPTCHA stops the schedule.
        """
        script = self._provider.extraction_script()
        for delay in self.retry_delays:
            await asyncio.sleep(delay)
            if not self._active() or self._state is SearchState.CAPTCHA_PENDING:
                return

            self._attempts += 1
            self._state = SearchState.EXTRACTING
            try:
                await self._surface.execute_script(script)
            except Exception as e:
                logger.warning("Script injection failed", attempt=self._attempts, error=str(e))
                if self._attempts >= len(self.retry_delays):
                    self._settle_error(ExtractionError(f"Script injection failed: {e}"))

    async def _extract_after_settle(self) -> None:
        await asyncio.sleep(self.settle_delay)
        if not self._active():
            return
        self._attempts += 1
        try:
            await self._surface.execute_script(self._provider.extraction_script())
        except Exception as e:
            logger.warning("Re-extraction after reload failed", error=str(e))

    async def _set_visible(self, visible: bool) -> None:
        try:
            await self._surface.set_visible(visible)
            self._visible = visible
        except Exception as e:
            logger.warning("Failed to toggle browser surface", visible=visible, error=str(e))
