"""Tests for the completion channel adapter."""

import asyncio

import pytest

from searchlight.cancellation import CancellationToken, SearchCancelled
from searchlight.llm.completion import CompletionStopped, collect_completion
from searchlight.llm.models import ChatMessage


MESSAGES = [ChatMessage.user("What's new?")]


class TestCollectCompletion:
    """Tests for collect_completion."""

    @pytest.mark.asyncio
    async def test_returns_final_text(self, fake_completion):
        """Test that incremental updates resolve to the complete text."""
        service = fake_completion(response='{"need_search": false}', chunks=['{"need', '_search"'])

        text = await collect_completion(service, MESSAGES)

        assert text == '{"need_search": false}'
        assert service.calls == [MESSAGES]

    @pytest.mark.asyncio
    async def test_stop_signal_raises(self, fake_completion):
        """Test that a provider-side stop surfaces as CompletionStopped."""
        service = fake_completion(chunks=["partial"], stop=True)

        with pytest.raises(CompletionStopped):
            await collect_completion(service, MESSAGES)

    @pytest.mark.asyncio
    async def test_producer_error_propagates(self, fake_completion):
        service = fake_completion(error=RuntimeError("model crashed"))

        with pytest.raises(RuntimeError, match="model crashed"):
            await collect_completion(service, MESSAGES)

    @pytest.mark.asyncio
    async def test_producer_exit_without_terminal_update(self):
        """Test that a service returning silently is treated as stopped."""

        class SilentService:
            async def complete(self, messages, should_stop, on_update):
                on_update("half", False, False)

        with pytest.raises(CompletionStopped, match="without a final response"):
            await asyncio.wait_for(collect_completion(SilentService(), MESSAGES), timeout=1.0)

    @pytest.mark.asyncio
    async def test_error_after_partial_update(self):
        """Test that a stream dropping after a partial chunk raises its error."""

        class DroppedStream:
            async def complete(self, messages, should_stop, on_update):
                on_update('{"need_', False, False)
                raise ConnectionError("stream dropped")

        with pytest.raises(ConnectionError, match="stream dropped"):
            await asyncio.wait_for(collect_completion(DroppedStream(), MESSAGES), timeout=1.0)

    @pytest.mark.asyncio
    async def test_error_after_partial_update_with_token(self):
        class DroppedStream:
            async def complete(self, messages, should_stop, on_update):
                on_update("partial", False, False)
                on_update("partial text", False, False)
                raise ConnectionError("stream dropped")

        with pytest.raises(ConnectionError):
            await asyncio.wait_for(
                collect_completion(DroppedStream(), MESSAGES, CancellationToken()),
                timeout=1.0,
            )

    @pytest.mark.asyncio
    async def test_cancel_before_start(self, fake_completion):
        token = CancellationToken()
        token.cancel()
        service = fake_completion(response="never")

        with pytest.raises(SearchCancelled):
            await collect_completion(service, MESSAGES, token)
        assert service.calls == []

    @pytest.mark.asyncio
    async def test_cancel_during_completion(self, fake_completion):
        """Test that firing the token interrupts a hanging completion."""
        token = CancellationToken()
        service = fake_completion(hang=True)

        task = asyncio.create_task(collect_completion(service, MESSAGES, token))
        await asyncio.sleep(0.02)
        token.cancel()

        with pytest.raises(SearchCancelled):
            await asyncio.wait_for(task, timeout=1.0)

