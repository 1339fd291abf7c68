"""Cooperative cancellation shared by every phase of a search."""

import asyncio


class SearchCancelled(Exception):
    """Raised when a search is stopped by the caller or the user."""

    pass


class CancellationToken:
    """Cancellation signal threaded from the orchestrator into every task.

    Phases poll ``is_cancelled`` at their boundaries, and concurrent tasks
    race against ``wait()`` so that raising the signal interrupts them
    without waiting for in-flight I/O to finish.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def cancel(self) -> None:
        """Request cancellation. Calling it more than once has no further effect."""
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, message: str = "Search aborted by user") -> None:
        """Raise ``SearchCancelled`` if cancellation was requested."""
        if self._event.is_set():
            raise SearchCancelled(message)

    async def wait(self) -> None:
        """Block until cancellation is requested."""
        await self._event.wait()
