"""Text-completion service protocol and its one-shot adapter.

Model clients report progress through a callback invoked with
``(text_so_far, is_complete, was_stopped)``. ``collect_completion`` feeds
those updates into a queue and awaits the terminal one, so callers that only
want the final text can simply ``await`` it.
"""

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Protocol

from searchlight.cancellation import CancellationToken, SearchCancelled
from searchlight.llm.models import ChatMessage
from searchlight.logging import get_logger

logger = get_logger("searchlight.llm.completion")

UpdateCallback = Callable[[str, bool, bool], None]
StopPredicate = Callable[[], bool]


class CompletionStopped(Exception):
    """Raised when a completion ends without delivering final text."""

    pass


class TextCompletionService(Protocol):
    """Anything that can stream a completion for a list of messages."""

    def complete(
        self,
        messages: list[ChatMessage],
        should_stop: StopPredicate,
        on_update: UpdateCallback,
    ) -> Awaitable[None]:
        """Generate a completion, reporting progress through ``on_update``.

        Implementations call ``on_update(text, True, False)`` once generation
        finishes, or ``on_update(text, False, True)`` when ``should_stop``
        returns True or the provider stops early.
        """
        ...


@dataclass(frozen=True)
class CompletionUpdate:
    """One progress report from a completion service."""

    text: str
    complete: bool
    stopped: bool


async def collect_completion(
    service: TextCompletionService,
    messages: list[ChatMessage],
    cancel: CancellationToken | None = None,
) -> str:
    """Run a completion and return its final text.

    Args:
        service: Completion service to invoke
        messages: Messages to send
        cancel: Optional cancellation token; firing it aborts the wait

    Returns:
        str: The complete response text

    Raises:
        SearchCancelled: If the token fires before completion
        CompletionStopped: If the service stops or exits without completing
    """
    if cancel is not None:
        cancel.raise_if_cancelled()

    updates: asyncio.Queue[CompletionUpdate] = asyncio.Queue()

    def on_update(text: str, complete: bool, stopped: bool) -> None:
        updates.put_nowait(CompletionUpdate(text=text, complete=complete, stopped=stopped))

    def should_stop() -> bool:
        return cancel is not None and cancel.is_cancelled

    producer = asyncio.ensure_future(service.complete(messages, should_stop, on_update))
    cancel_waiter = asyncio.ensure_future(cancel.wait()) if cancel is not None else None
    getter: asyncio.Future[CompletionUpdate] | None = None
    chunks = 0

    try:
        while True:
            if getter is None:
                getter = asyncio.ensure_future(updates.get())
            # A finished producer with nothing queued will never send a terminal update
            if producer.done() and updates.empty() and not getter.done():
                _raise_producer_exit(producer)

            waiting: set[asyncio.Future] = {getter}
            if not producer.done():
                waiting.add(producer)
            if cancel_waiter is not None:
                waiting.add(cancel_waiter)

            done, _ = await asyncio.wait(waiting, return_when=asyncio.FIRST_COMPLETED)

            if getter in done:
                update = getter.result()
                getter = None
                chunks += 1
                if update.complete:
                    logger.debug("Completion finished", chunks=chunks, chars=len(update.text))
                    return update.text
                if update.stopped:
                    if cancel is not None and cancel.is_cancelled:
                        raise SearchCancelled("Search aborted by user")
                    raise CompletionStopped("Request stopped")
                continue

            if cancel_waiter is not None and cancel_waiter in done:
                raise SearchCancelled("Search aborted by user")
    finally:
        for future in (getter, cancel_waiter, producer):
            if future is not None and not future.done():
                future.cancel()
        if not producer.done():
            await asyncio.gather(producer, return_exceptions=True)
        elif not producer.cancelled() and producer.exception() is not None:
            logger.debug("Completion service failed", error=str(producer.exception()))


def _raise_producer_exit(producer: asyncio.Future) -> None:
    error = producer.exception() if not producer.cancelled() else None
    if error is not None:
        raise error
    raise CompletionStopped("Completion ended without a final response")
