"""Tavily search API client.

Tavily returns results that already carry page content, so a Tavily search
replaces both the result scrape and the content fetch phases.
"""

import asyncio
from typing import Any

import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from searchlight.cancellation import CancellationToken, SearchCancelled
from searchlight.config import Settings, get_settings
from searchlight.logging import Timer, get_logger
from searchlight.models import WebContent

logger = get_logger("searchlight.search.tavily")


class TavilyError(Exception):
    """Exception raised when a Tavily search fails."""

    pass


class TavilyClient:
    """Async client for the Tavily ``/search`` endpoint."""

    def __init__(
        self,
        api_key: str | None = None,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the client.

        Args:
            api_key: Tavily API key (defaults to settings)
            settings: Settings instance (uses global if not provided)
            transport: Optional httpx transport (used by tests)
        """
        self.settings = settings or get_settings()
        self.api_key = api_key or self.settings.tavily_api_key
        self.api_host = self.settings.tavily_api_host.rstrip("/")
        self._transport = transport

    async def search(
        self,
        query: str,
        max_results: int | None = None,
        cancel: CancellationToken | None = None,
    ) -> list[WebContent]:
        """Search and return results with their content.

        Args:
            query: Search query
            max_results: Maximum results (defaults to settings)
            cancel: Optional cancellation token

        Returns:
            list[WebContent]: Results in relevance order

        Raises:
            TavilyError: If the key is missing or the API call fails
            SearchCancelled: If the token fires first
        """
        if not self.api_key:
            raise TavilyError("Tavily API key is not configured")
        if cancel is not None:
            cancel.raise_if_cancelled()

        max_results = max_results or self.settings.tavily_max_results
        logger.info("Starting Tavily search", query=query, max_results=max_results)

        request = asyncio.ensure_future(self._request(query, max_results))
        if cancel is None:
            data = await request
        else:
            cancel_waiter = asyncio.ensure_future(cancel.wait())
            try:
                await asyncio.wait({request, cancel_waiter}, return_when=asyncio.FIRST_COMPLETED)
            finally:
                cancel_waiter.cancel()
            if not request.done():
                request.cancel()
                await asyncio.gather(request, return_exceptions=True)
                raise SearchCancelled("Search aborted by user")
            data = request.result()

        results = data.get("results") or []
        contents = [_to_web_content(raw) for raw in results[:max_results] if isinstance(raw, dict)]
        logger.info("Tavily search complete", results=len(contents))
        return contents

    async def _request(self, query: str, max_results: int) -> dict[str, Any]:
        try:
            return await self._post_search(query, max_results)
        except httpx.TimeoutException as e:
            raise TavilyError(f"Tavily request timed out after {self.settings.tavily_timeout:g}s") from e

    @retry(
        retry=retry_if_exception_type((httpx.TimeoutException,)),
        stop=stop_after_attempt(2),
        wait=wait_exponential(multiplier=1, min=1, max=5),
        reraise=True,
    )
    async def _post_search(self, query: str, max_results: int) -> dict[str, Any]:
        payload = {
            "query": query,
            "max_results": max_results,
            "include_raw_content": self.settings.tavily_include_raw_content,
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}

        async with Timer("Tavily search request", logger):
            async with httpx.AsyncClient(
                timeout=self.settings.tavily_timeout,
                transport=self._transport,
            ) as client:
                try:
                    response = await client.post(f"{self.api_host}/search", json=payload, headers=headers)
                    response.raise_for_status()
                except httpx.HTTPStatusError as e:
                    logger.warning(
                        "Tavily API error",
                        status=e.response.status_code,
                        body=e.response.text[:200],
                    )
                    raise TavilyError(
                        f"Tavily API error: {e.response.status_code} {e.response.reason_phrase}"
                    ) from e
                except httpx.TimeoutException:
                    raise
                except httpx.HTTPError as e:
                    raise TavilyError(f"Tavily search failed: {e}") from e

        try:
            data = response.json()
        except ValueError as e:
            raise TavilyError(f"Tavily returned invalid JSON: {e}") from e
        if not isinstance(data, dict):
            raise TavilyError("Tavily returned an unexpected payload")
        return data


def _to_web_content(raw: dict[str, Any]) -> WebContent:
    summary = raw.get("content") or ""
    return WebContent(
        title=raw.get("title") or "No title",
        url=raw.get("url") or "",
        content=raw.get("raw_content") or summary,
        excerpt=summary,
    )
