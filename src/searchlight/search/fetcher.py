"""Concurrent page fetcher with early-exit aggregation.

Candidates are fetched in parallel and processed in completion order. The
engine stops waiting as soon as enough good pages have arrived, preferring
the engine's top-ranked results:

- all 3 top-ranked pages done (and at least 3 valid) -> keep 3
- 2 top-ranked pages done and at least 4 valid -> keep 4
- at least 6 valid -> keep 5

Per-URL failures never escape; the engine as a whole only "fails" by
returning an empty list.
"""

import asyncio
from urllib.parse import urlparse

import httpx

from searchlight.cancellation import CancellationToken
from searchlight.config import Settings, get_settings
from searchlight.logging import Timer, get_logger
from searchlight.models import NO_CONTENT, SearchResultItem, WebContent
from searchlight.search.distill import distill_html

logger = get_logger("searchlight.search.fetcher")

TOP_RANKED = 3


class FetcherError(Exception):
    """Exception raised when fetching or parsing a single page fails."""

    pass


class InvalidURLError(FetcherError):
    """Raised for URLs that are not fetched at all."""

    pass


class ResponseTooLargeError(FetcherError):
    """Raised when a response exceeds the byte limit."""

    pass


class ContentFetcher:
    """Fetches candidate pages and distills them into WebContent.

    Each page is bounded by a per-URL timeout covering connect, the streamed
    read and distillation, and by a byte limit checked while reading.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the fetcher.

        Args:
            settings: Settings instance (uses global if not provided)
            transport: Optional httpx transport (used by tests)
        """
        self.settings = settings or get_settings()
        self._transport = transport

    async def fetch_contents(
        self,
        items: list[SearchResultItem],
        timeout: float | None = None,
        max_chars: int | None = None,
        cancel: CancellationToken | None = None,
    ) -> list[WebContent]:
        """Fetch candidate pages concurrently and keep the first good ones.

        Args:
            items: Candidates in relevance order
            timeout: Per-URL timeout in seconds (defaults to settings)
            max_chars: Per-result content cap (defaults to settings)
            cancel: Optional cancellation token; when it fires, outstanding
                fetches are abandoned and what was collected is returned

        Returns:
            list[WebContent]: Valid contents in completion order, truncated
        """
        timeout = timeout or self.settings.fetch_timeout
        max_chars = max_chars or self.settings.fetch_max_chars
        candidates = items[: self.settings.fetch_max_candidates]
        if not candidates:
            return []
        if cancel is not None and cancel.is_cancelled:
            logger.info("Fetch skipped, search already cancelled")
            return []

        logger.info(
            "Starting concurrent fetch",
            candidates=len(candidates),
            timeout_s=timeout,
            max_chars=max_chars,
        )

        try:
            async with Timer("fetch_contents", logger):
                async with self._create_client(timeout) as client:
                    collected, top_ranked = await self._gather_until_enough(
                        client, candidates, timeout, cancel
                    )
        except Exception as e:
            logger.error("Content fetch failed", error=str(e))
            return []

        selected = _select(collected, top_ranked)
        logger.info(
            "Fetch complete",
            valid=len(collected),
            top_ranked=top_ranked,
            returned=len(selected),
        )
        return [content.truncated(max_chars) for content in selected]

    def _create_client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            headers={"User-Agent": self.settings.fetch_user_agent},
            transport=self._transport,
        )

    async def _gather_until_enough(
        self,
        client: httpx.AsyncClient,
        candidates: list[SearchResultItem],
        timeout: float,
        cancel: CancellationToken | None,
    ) -> tuple[list[WebContent], int]:
        """Race the fetch tasks, stopping once an exit rule is satisfied.

        Returns:
            tuple: Valid contents in completion order, and how many of them
            came from the top-ranked candidates
        """
        tasks = {
            asyncio.ensure_future(self._fetch_single(client, item, timeout)): index
            for index, item in enumerate(candidates)
        }
        cancel_waiter = asyncio.ensure_future(cancel.wait()) if cancel is not None else None

        collected: list[WebContent] = []
        top_ranked = 0
        pending: set[asyncio.Future] = set(tasks)

        try:
            while pending:
                waiting = pending | {cancel_waiter} if cancel_waiter is not None else pending
                done, _ = await asyncio.wait(waiting, return_when=asyncio.FIRST_COMPLETED)

                if cancel_waiter is not None and cancel_waiter in done:
                    logger.info("Fetch cancelled", collected=len(collected))
                    break

                pending -= done
                # Ties within one wake-up resolve in relevance order
                for task in sorted(done, key=tasks.__getitem__):
                    index = tasks[task]
                    content = _task_content(task)
                    if content is None or not content.has_content:
                        continue

                    collected.append(content)
                    if index < TOP_RANKED:
                        top_ranked += 1
                    logger.debug(
                        "Page completed",
                        url=content.url,
                        valid=len(collected),
                        top_ranked=top_ranked,
                    )
                    if _should_stop(len(collected), top_ranked):
                        logger.info(
                            "Early exit",
                            valid=len(collected),
                            top_ranked=top_ranked,
                            abandoned=len(pending),
                        )
                        return collected, top_ranked
            return collected, top_ranked
        finally:
            leftovers = [task for task in tasks if not task.done()]
            if cancel_waiter is not None:
                leftovers.append(cancel_waiter)
            for task in leftovers:
                task.cancel()
            if leftovers:
                await asyncio.gather(*leftovers, return_exceptions=True)

    async def _fetch_single(
        self,
        client: httpx.AsyncClient,
        item: SearchResultItem,
        timeout: float,
    ) -> WebContent:
        """Fetch and distill one page; every failure becomes NO_CONTENT."""
        try:
            self._validate_url(item.url)
            async with asyncio.timeout(timeout):
                html = await self._read_page(client, item.url)
                content = await asyncio.to_thread(distill_html, html, item.url, item.title)
            logger.debug("Fetched page", url=item.url, chars=len(content.content))
            return content
        except TimeoutError:
            logger.debug("Fetch timed out", url=item.url, timeout_s=timeout)
        except httpx.HTTPStatusError as e:
            logger.debug("HTTP error", url=item.url, status=e.response.status_code)
        except httpx.HTTPError as e:
            logger.debug("Request failed", url=item.url, error=str(e))
        except Exception as e:
            logger.debug("Fetch failed", url=item.url, error=str(e))
        return WebContent(title=item.title, url=item.url, content=NO_CONTENT)

    def _validate_url(self, url: str) -> None:
        if len(url) > self.settings.fetch_max_url_length:
            raise InvalidURLError(f"URL too long ({len(url)} chars)")
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise InvalidURLError(f"Invalid URL format: {url}")

    async def _read_page(self, client: httpx.AsyncClient, url: str) -> str:
        """Stream a page body, aborting once it exceeds the byte limit."""
        max_bytes = self.settings.fetch_max_bytes
        async with client.stream("GET", url) as response:
            response.raise_for_status()

            declared = response.headers.get("content-length", "")
            if declared.isdigit() and int(declared) > max_bytes:
                raise ResponseTooLargeError(f"Declared size {declared} bytes exceeds {max_bytes}")

            body = bytearray()
            async for chunk in response.aiter_bytes():
                body.extend(chunk)
                if len(body) > max_bytes:
                    raise ResponseTooLargeError(f"Body exceeds {max_bytes} bytes")

            encoding = response.charset_encoding or "utf-8"
        return body.decode(encoding, errors="replace")


def _task_content(task: asyncio.Future) -> WebContent | None:
    if task.cancelled():
        return None
    error = task.exception()
    if error is not None:
        logger.warning("Fetch task raised", error=str(error))
        return None
    return task.result()


def _should_stop(valid: int, top_ranked: int) -> bool:
    if top_ranked == TOP_RANKED and valid >= 3:
        return True
    if top_ranked == 2 and valid >= 4:
        return True
    return valid >= 6


def _select(collected: list[WebContent], top_ranked: int) -> list[WebContent]:
    """How many completions to keep, given how the race ended."""
    if top_ranked == TOP_RANKED:
        return collected[:3]
    if top_ranked == 2 and len(collected) >= 4:
        return collected[:4]
    return collected[:5]
