# jan_lookup/pipeline/scope.py
import asyncio
import logging
from typing import Awaitable, Optional, Set, TypeVar

from ..models import SessionCancelled

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CancelScope:
    """
    Owns every delayed or background piece of work of one session.

    All waits go through the scope, and everything checks it before acting, so
    tearing the scope down stops the session dead: pending sleeps raise
    SessionCancelled and tracked tasks are cancelled.
    """
    def __init__(self, name: str = "session"):
        self.name = name
        self._cancelled = False
        self._tasks: Set[asyncio.Task] = set()
        self._wakeup: Optional[asyncio.Event] = None

    async def __aenter__(self):
        self.check()
        self._event()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        # Leaving the scope stops leftover background work; only cancel() marks it dead.
        self._cancel_tasks()

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def check(self):
        """Raises SessionCancelled if the scope has been torn down."""
        if self._cancelled:
            raise SessionCancelled(f"{self.name} was cancelled")

    def _event(self) -> asyncio.Event:
        if self._wakeup is None:
            self._wakeup = asyncio.Event()
        return self._wakeup

    async def sleep(self, delay: float):
        self.check()
        if delay > 0:
            try:
                await asyncio.wait_for(self._event().wait(), timeout=delay)
            except asyncio.TimeoutError:
                pass
        else:
            # Still yield so other scheduled work (and cancellation) gets a turn.
            await asyncio.sleep(0)
        self.check()

    async def wait_for(self, awaitable: Awaitable[T], timeout: float) -> T:
        """Bounded wait that also ends early when the scope is cancelled."""
        self.check()
        task = self.spawn(awaitable)
        cancel_waiter = asyncio.ensure_future(self._event().wait())
        try:
            done, _ = await asyncio.wait({task, cancel_waiter}, timeout=timeout, return_when=asyncio.FIRST_COMPLETED)
        finally:
            cancel_waiter.cancel()
        self.check()
        if task not in done:
            task.cancel()
            raise asyncio.TimeoutError()
        return task.result()

    def spawn(self, coro: Awaitable[T]) -> "asyncio.Task[T]":
        self.check()
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def cancel(self):
        if self._cancelled:
            return
        self._cancelled = True
        self._event().set()
        self._cancel_tasks()

    def _cancel_tasks(self):
        pending = [task for task in self._tasks if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            logger.debug("Cancelled %d pending task(s) of %s.", len(pending), self.name)
