"""Bing search adapter."""

import base64
import binascii
from urllib.parse import parse_qs, urlparse

from searchlight.models import SearchEngine
from searchlight.search.providers.base import SearchProvider


class BingProvider(SearchProvider):
    """Scrapes Bing result pages.

    Bing wraps result links in ``bing.com/ck/a`` click-tracking redirects
    whose ``u`` parameter is ``a1`` followed by the base64-encoded target.
    """

    engine = SearchEngine.BING
    name = "Bing"

    result_selectors = (
        "#b_results h2 a",
        "#b_results .b_algo h2 a",
        "li.b_algo a.tilk",
    )
    heading_selector = "#b_results h2"
    min_headings = 1
    captcha_markers = (
        "b_captcha",
        "challenges.cloudflare.com",
    )
    internal_markers = (
        "bing.com/search?",
        "bing.com/settings",
        "login.live.com",
    )

    def build_search_url(self, query: str) -> str:
        return f"https://www.bing.com/search?q={self.encode_query(query)}"

    def resolve_url(self, url: str) -> str | None:
        """Decode click-tracking redirects; undecodable ones are kept as-is."""
        parsed = urlparse(url)
        if not (parsed.netloc.endswith("bing.com") and parsed.path.startswith("/ck/a")):
            return url

        encoded = (parse_qs(parsed.query).get("u") or [""])[0]
        if len(encoded) <= 2:
            return url

        payload = encoded[2:]
        payload += "=" * (-len(payload) % 4)
        try:
            decoded = base64.urlsafe_b64decode(payload).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError):
            return url
        return decoded if decoded.startswith("http") else url
