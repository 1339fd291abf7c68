"""Tests for the DuckDuckGo client."""

from unittest.mock import patch

import pytest
from structlog.testing import capture_logs

from searchlight.cancellation import CancellationToken, SearchCancelled
from searchlight.search.duckduckgo import DuckDuckGoClient, SearchClientError


class TestDuckDuckGoClient:
    """Tests for DuckDuckGoClient with the ddgs call mocked out."""

    @pytest.mark.asyncio
    async def test_search_maps_results(self, test_settings):
        raw = [
            {"title": "Tokyo Weather", "href": "https://weather.example/tokyo", "body": "Sunny"},
            {"title": "  ", "link": "https://forecast.example/jp", "body": "Clear"},
            {"title": "Duplicate", "href": "https://weather.example/tokyo", "body": "Again"},
            {"title": "No URL", "body": "Missing"},
        ]
        client = DuckDuckGoClient(test_settings)

        with patch.object(client, "_sync_search", return_value=raw) as mock_search:
            results = await client.search("tokyo weather", max_results=5)

        mock_search.assert_called_once_with(
            query="tokyo weather",
            max_results=5,
            region="wt-wt",
            time_range=None,
        )
        assert [(r.title, r.url) for r in results] == [
            ("Tokyo Weather", "https://weather.example/tokyo"),
            ("No title", "https://forecast.example/jp"),
        ]

    @pytest.mark.asyncio
    async def test_logs_structured_events(self, test_settings):
        """Test that search events carry the query as a field, not in the message."""
        raw = [{"title": "Tokyo Weather", "href": "https://weather.example/tokyo"}]
        client = DuckDuckGoClient(test_settings)

        with capture_logs() as logs, patch.object(client, "_sync_search", return_value=raw):
            await client.search("tokyo weather", max_results=5)

        events = {log["event"]: log for log in logs}
        assert events["Searching DuckDuckGo"]["query"] == "tokyo weather"
        assert events["Searching DuckDuckGo"]["max_results"] == 5
        assert events["DuckDuckGo search complete"]["results"] == 1

    @pytest.mark.asyncio
    async def test_max_results_default(self, test_settings):
        raw = [{"title": f"R{i}", "href": f"https://site{i}.example"} for i in range(20)]
        client = DuckDuckGoClient(test_settings)

        with patch.object(client, "_sync_search", return_value=raw):
            results = await client.search("anything")

        assert len(results) == test_settings.browser_max_results

    @pytest.mark.asyncio
    async def test_failure_wrapped(self, test_settings):
        client = DuckDuckGoClient(test_settings)

        with patch.object(client, "_sync_search", side_effect=RuntimeError("Ratelimit")):
            with pytest.raises(SearchClientError, match="Ratelimit"):
                await client.search("tokyo weather")

    @pytest.mark.asyncio
    async def test_cancelled_before_search(self, test_settings):
        client = DuckDuckGoClient(test_settings)
        token = CancellationToken()
        token.cancel()

        with patch.object(client, "_sync_search") as mock_search:
            with pytest.raises(SearchCancelled):
                await client.search("tokyo weather", cancel=token)
        mock_search.assert_not_called()
