"""Tests for the search engine adapters."""

import json

import pytest

from searchlight.models import SearchEngine
from searchlight.search.providers import (
    BRIDGE_OBJECT,
    BaiduProvider,
    BingProvider,
    GoogleProvider,
    get_provider,
)


def message(*pairs):
    return {"type": "search_results", "results": [{"title": t, "url": u} for t, u in pairs]}


class TestRegistry:
    """Tests for adapter lookup."""

    @pytest.mark.parametrize(
        "engine,cls",
        [
            (SearchEngine.GOOGLE, GoogleProvider),
            (SearchEngine.BING, BingProvider),
            (SearchEngine.BAIDU, BaiduProvider),
        ],
    )
    def test_browser_engines(self, engine, cls):
        assert isinstance(get_provider(engine), cls)

    def test_non_browser_engine_rejected(self):
        with pytest.raises(ValueError):
            get_provider(SearchEngine.TAVILY)


class TestSearchUrls:
    """Tests for search URL construction."""

    def test_google(self):
        url = GoogleProvider().build_search_url("Tokyo weather today")

        assert url == "https://www.google.com/search?q=Tokyo%20weather%20today"

    def test_bing_encodes_reserved_characters(self):
        url = BingProvider().build_search_url("c++ & rust?")

        assert url == "https://www.bing.com/search?q=c%2B%2B%20%26%20rust%3F"

    def test_baidu_unicode(self):
        url = BaiduProvider().build_search_url("东京天气")

        assert url.startswith("https://www.baidu.com/s?wd=%E4%B8%9C")


class TestExtractionScript:
    """Tests for the generated extraction script."""

    def test_script_embeds_engine_heuristics(self):
        provider = GoogleProvider()

        script = provider.extraction_script()

        assert f"window.{BRIDGE_OBJECT}.postMessage" in script
        assert json.dumps(list(provider.result_selectors)) in script
        assert "captcha_required" in script
        assert "search_results" in script
        assert "console_log" in script
        assert "$" + "selectors" not in script

    def test_min_headings_per_engine(self):
        assert "headingCount < 3" in GoogleProvider().extraction_script()
        assert "headingCount < 1" in BingProvider().extraction_script()


class TestParseResults:
    """Tests for parse_results."""

    def test_distinct_links_round_trip(self):
        """Test that N distinct external links yield N items without duplicates."""
        pairs = [(f"Result {i}", f"https://site{i}.example/page") for i in range(6)]

        items = GoogleProvider().parse_results(message(*pairs))

        assert [(item.title, item.url) for item in items] == pairs
        assert len({item.url for item in items}) == 6

    def test_accepts_json_text(self):
        items = BingProvider().parse_results(json.dumps(message(("A", "https://a.example"))))

        assert [item.url for item in items] == ["https://a.example"]

    def test_dedupes_by_url_and_title(self):
        items = GoogleProvider().parse_results(
            message(
                ("Python", "https://python.org"),
                ("Python docs", "https://python.org"),
                ("  python ", "https://mirror.example/python"),
                ("Other", "https://other.example"),
            )
        )

        assert [item.url for item in items] == ["https://python.org", "https://other.example"]

    def test_drops_internal_and_invalid_links(self):
        items = GoogleProvider().parse_results(
            message(
                ("More results", "https://www.google.com/search?q=next"),
                ("Script", "javascript:void(0)"),
                ("Relative", "/preferences"),
                ("", "https://untitled.example"),
                ("Kept", "https://kept.example"),
            )
        )

        assert [item.url for item in items] == ["https://kept.example"]

    def test_other_message_types_yield_nothing(self):
        provider = GoogleProvider()

        assert provider.parse_results({"type": "captcha_required"}) == []
        assert provider.parse_results("not json") == []
        assert provider.parse_results({"type": "search_results", "results": "oops"}) == []

    def test_google_redirect_unwrapped(self):
        items = GoogleProvider().parse_results(
            message(("Article", "https://www.google.com/url?q=https://news.example/story&sa=U"))
        )

        assert items[0].url == "https://news.example/story"

    def test_bing_redirect_decoded(self):
        """Test that ck/a links decode to the target URL."""
        wrapped = "https://www.bing.com/ck/a?!&&p=abc&u=a1aHR0cHM6Ly9leGFtcGxlLmNvbS9wYWdl&ntb=1"

        items = BingProvider().parse_results(message(("Example", wrapped)))

        assert items[0].url == "https://example.com/page"

    def test_bing_undecodable_redirect_kept(self):
        wrapped = "https://www.bing.com/ck/a?u=a1%%%"

        assert BingProvider().resolve_url(wrapped) == wrapped

    def test_baidu_filters_internal(self):
        items = BaiduProvider().parse_results(
            message(
                ("登录", "https://passport.baidu.com/login"),
                ("结果", "https://www.baidu.com/link?url=abc"),
            )
        )

        assert [item.url for item in items] == ["https://www.baidu.com/link?url=abc"]
