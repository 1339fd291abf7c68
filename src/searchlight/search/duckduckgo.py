"""DuckDuckGo search client.

DuckDuckGo needs no browser: ddgs returns a result list directly, which is
then handed to the content fetcher like any scraped engine's results.
"""

import asyncio
from typing import Any

from ddgs import DDGS

from searchlight.cancellation import CancellationToken
from searchlight.config import Settings, get_settings
from searchlight.logging import get_logger
from searchlight.models import SearchResultItem

logger = get_logger("searchlight.search.duckduckgo")


class SearchClientError(Exception):
    """Exception raised when search operations fail."""

    pass


class DuckDuckGoClient:
    """Async client for DuckDuckGo web search.

    This client wraps the ddgs library, running its blocking search in a
    worker thread.
    """

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()

    async def search(
        self,
        query: str,
        max_results: int | None = None,
        region: str = "wt-wt",
        time_range: str | None = None,
        cancel: CancellationToken | None = None,
    ) -> list[SearchResultItem]:
        """Search the web using DuckDuckGo.

        Args:
            query: Search query string
            max_results: Maximum number of results to return (defaults to settings)
            region: Region code (e.g., 'wt-wt' for worldwide, 'us-en' for US)
            time_range: Time range filter ('d'=day, 'w'=week, 'm'=month, 'y'=year)
            cancel: Optional cancellation token, checked before the search starts

        Returns:
            list[SearchResultItem]: Results in relevance order

        Raises:
            SearchClientError: If search fails
        """
        if cancel is not None:
            cancel.raise_if_cancelled()
        max_results = max_results or self.settings.browser_max_results

        try:
            logger.info("Searching DuckDuckGo", query=query, max_results=max_results)

            raw_results = await asyncio.to_thread(
                self._sync_search,
                query=query,
                max_results=max_results,
                region=region,
                time_range=time_range,
            )
        except Exception as e:
            logger.error("DuckDuckGo search failed", query=query, error=str(e))
            raise SearchClientError(f"Search failed: {e}") from e

        results = []
        seen: set[str] = set()
        for raw in raw_results:
            url = raw.get("href") or raw.get("link") or ""
            title = (raw.get("title") or "").strip()
            if not url or url in seen:
                continue
            seen.add(url)
            results.append(SearchResultItem(title=title or "No title", url=url))

        logger.info("DuckDuckGo search complete", query=query, results=len(results))
        return results[:max_results]

    def _sync_search(
        self,
        query: str,
        max_results: int,
        region: str,
        time_range: str | None,
    ) -> list[dict[str, Any]]:
        with DDGS() as ddgs:
            params: dict[str, Any] = {
                "region": region,
                "max_results": max_results,
            }
            if time_range:
                params["timelimit"] = time_range

            return list(ddgs.text(query, **params))
