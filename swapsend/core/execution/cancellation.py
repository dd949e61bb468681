"""
Cancellation signal for in-flight submissions.

The submitter wraps every suspension point (broadcast, receipt lookup,
simulate, submit, poll sleep) with a CancellationToken. Cancelling the
token cancels the awaited network call instead of abandoning it.
"""

import asyncio
from typing import Awaitable, Optional, TypeVar

from .errors import SubmissionCancelled


T = TypeVar("T")


class CancellationToken:
    """One-shot cancellation signal shared by a caller and a submission."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason: Optional[str] = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: Optional[str] = None) -> None:
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise SubmissionCancelled(self.reason)

    async def guard(self, awaitable: Awaitable[T]) -> T:
        """Await `awaitable` unless the token fires first.

        If the token fires first the underlying task is cancelled and
        awaited, then SubmissionCancelled is raised.
        """
        if self._event.is_set():
            # Close a never-started coroutine so it does not warn
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise SubmissionCancelled(self.reason)

        task = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            done, _ = await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            task.cancel()
            waiter.cancel()
            raise

        if task in done:
            waiter.cancel()
            return task.result()

        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        raise SubmissionCancelled(self.reason)

    async def sleep(self, delay: float) -> None:
        """Sleep for `delay` seconds, waking early if cancelled."""
        self.raise_if_cancelled()
        try:
            await asyncio.wait_for(self._event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            return
        raise SubmissionCancelled(self.reason)
