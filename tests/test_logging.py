"""Tests for logging helpers."""

import json
import logging

import pytest
import structlog

from searchlight.logging import (
    Timer,
    bind_search_context,
    clear_search_context,
    get_logger,
    setup_logging,
)


@pytest.fixture(autouse=True)
def reset_structlog():
    yield
    structlog.contextvars.clear_contextvars()
    structlog.reset_defaults()


class TestSearchContext:
    """Tests for per-run context binding."""

    def test_bind_and_clear(self):
        search_id = bind_search_context(engine="google")

        bound = structlog.contextvars.get_contextvars()
        assert bound == {"search_id": search_id, "engine": "google"}
        assert len(search_id) == 8

        clear_search_context()
        assert structlog.contextvars.get_contextvars() == {}

    def test_ids_are_unique(self):
        assert bind_search_context() != bind_search_context()


class TestTimer:
    """Tests for the Timer context manager."""

    def test_sync_block(self):
        with Timer("parse") as timer:
            pass

        assert timer.elapsed >= 0

    @pytest.mark.asyncio
    async def test_async_block(self):
        async with Timer("fetch") as timer:
            pass

        assert timer.elapsed >= 0

    def test_failure_propagates(self):
        with pytest.raises(ValueError):
            with Timer("parse") as timer:
                raise ValueError("bad page")

        assert timer.elapsed >= 0


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_json_file_output(self, tmp_path):
        log_file = tmp_path / "logs" / "searchlight.log"
        setup_logging(level="INFO", log_file=log_file)

        bind_search_context(engine="bing")
        get_logger("searchlight.test").info("Fetch complete", valid=3)
        for handler in logging.getLogger().handlers:
            handler.flush()

        lines = [line for line in log_file.read_text().splitlines() if line.strip()]
        event = json.loads(lines[-1])
        assert event["event"] == "Fetch complete"
        assert event["valid"] == 3
        assert event["engine"] == "bing"
        assert "search_id" in event

    def test_library_loggers_quieted(self):
        setup_logging(level="INFO")

        assert logging.getLogger("httpx").level == logging.WARNING

    def test_debug_keeps_library_loggers(self):
        setup_logging(level="DEBUG")

        assert logging.getLogger("httpx").level == logging.DEBUG
