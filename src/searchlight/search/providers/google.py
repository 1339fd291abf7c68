"""Google search adapter."""

from urllib.parse import parse_qs, urlparse

from searchlight.models import SearchEngine
from searchlight.search.providers.base import SearchProvider


class GoogleProvider(SearchProvider):
    """Scrapes Google result pages.

    Google reshuffles its result markup often, so several container
    selectors are tried before falling back to scraping ``h3`` headings.
    A page with fewer than three ``h3`` headings is treated as a robot check.
    """

    engine = SearchEngine.GOOGLE
    name = "Google"

    result_selectors = (
        "#search .MjjYud",
        "#search .g",
        "#rso .g",
        ".hlcw0c",
        "[data-sokoban-container]",
        "div[data-hveid] > div > div",
        "#rso > div",
        ".v7W49e",
        ".tF2Cxc",
        ".Gx5Zad",
    )
    heading_selector = "h3"
    min_headings = 3
    captcha_markers = (
        "g-recaptcha",
        'id="captcha-form"',
        "unusual traffic from your computer",
    )
    internal_markers = (
        "google.com/search",
        "google.com/settings",
        "accounts.google",
        "support.google.com",
        "policies.google.com",
    )

    def build_search_url(self, query: str) -> str:
        return f"https://www.google.com/search?q={self.encode_query(query)}"

    def resolve_url(self, url: str) -> str | None:
        """Unwrap ``google.com/url?q=...`` redirects."""
        parsed = urlparse(url)
        if parsed.netloc.endswith("google.com") and parsed.path == "/url":
            params = parse_qs(parsed.query)
            target = (params.get("q") or params.get("url") or [None])[0]
            return target
        return url
