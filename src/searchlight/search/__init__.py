"""Web search: engine adapters, browser executor, content fetcher and API providers."""

from searchlight.search.browser import (
    BrowserSearchError,
    BrowserSearchExecutor,
    BrowserSearchTimeout,
    BrowserSurface,
    CaptchaDismissed,
    ExtractionError,
    SearchState,
)
from searchlight.search.distill import distill_html
from searchlight.search.duckduckgo import DuckDuckGoClient, SearchClientError
from searchlight.search.fetcher import ContentFetcher, FetcherError
from searchlight.search.playwright_surface import BrowserUnavailableError, PlaywrightSurface
from searchlight.search.tavily import TavilyClient, TavilyError

__all__ = [
    # Browser
    "BrowserSearchExecutor",
    "BrowserSurface",
    "SearchState",
    "BrowserSearchError",
    "BrowserSearchTimeout",
    "CaptchaDismissed",
    "ExtractionError",
    "PlaywrightSurface",
    "BrowserUnavailableError",
    # Fetcher
    "ContentFetcher",
    "FetcherError",
    "distill_html",
    # Providers
    "DuckDuckGoClient",
    "SearchClientError",
    "TavilyClient",
    "TavilyError",
]
