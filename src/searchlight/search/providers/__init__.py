"""Search engine adapters, one per engine scraped through a browser."""

from searchlight.models import SearchEngine
from searchlight.search.providers.baidu import BaiduProvider
from searchlight.search.providers.base import (
    BRIDGE_OBJECT,
    MESSAGE_CAPTCHA,
    MESSAGE_ERROR,
    MESSAGE_LOG,
    MESSAGE_RESULTS,
    SearchProvider,
)
from searchlight.search.providers.bing import BingProvider
from searchlight.search.providers.google import GoogleProvider

_PROVIDERS: dict[SearchEngine, SearchProvider] = {
    SearchEngine.GOOGLE: GoogleProvider(),
    SearchEngine.BING: BingProvider(),
    SearchEngine.BAIDU: BaiduProvider(),
}


def get_provider(engine: SearchEngine) -> SearchProvider:
    """Get the adapter for a browser-scraped engine.

    Raises:
        ValueError: If the engine is not scraped through a browser
    """
    try:
        return _PROVIDERS[SearchEngine(engine)]
    except KeyError:
        raise ValueError(f"No browser search adapter for engine '{engine}'") from None


__all__ = [
    "SearchProvider",
    "GoogleProvider",
    "BingProvider",
    "BaiduProvider",
    "get_provider",
    "BRIDGE_OBJECT",
    "MESSAGE_RESULTS",
    "MESSAGE_CAPTCHA",
    "MESSAGE_ERROR",
    "MESSAGE_LOG",
]
