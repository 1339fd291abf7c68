"""Baidu search adapter."""

from searchlight.models import SearchEngine
from searchlight.search.providers.base import SearchProvider


class BaiduProvider(SearchProvider):
    """Scrapes Baidu result pages.

    Result links are ``baidu.com/link?url=`` redirects; they are kept and
    resolved by the HTTP client when the page is fetched.
    """

    engine = SearchEngine.BAIDU
    name = "Baidu"

    result_selectors = (
        "#content_left .result h3 a",
        "#content_left .c-container h3 a",
        ".result h3 a",
        ".c-container h3.c-title a",
        ".c-container h3.t a",
        ".result-op h3 a",
        "h3 a[href]",
    )
    heading_selector = "#content_left h3"
    min_headings = 1
    captcha_markers = (
        "wappass.baidu.com",
        "安全验证",
    )
    internal_markers = (
        "baidu.com/s?",
        "baidu.com/sf/",
        "passport.baidu.com",
    )

    def build_search_url(self, query: str) -> str:
        return f"https://www.baidu.com/s?wd={self.encode_query(query)}"
