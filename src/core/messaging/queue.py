# src/core/messaging/queue.py
"""Outbound send queue.

All sends for a session go through one SendQueue. Tasks run strictly one at
a time in submission order, and a task never starts less than
min_interval_ms after the previous one finished, which keeps the bot under
WhatsApp's rate limits.

Example:
    >>> queue = SendQueue(min_interval_ms=1000)
    >>> result = await queue.enqueue(lambda: transport.send_message(jid, payload))
"""

import asyncio
import contextlib
import inspect
import logging
import time
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from src.core.errors import QueueCancelledError

logger = logging.getLogger(__name__)

SendTask = Callable[[], Awaitable[Any]]


@dataclass
class _QueuedTask:
    task: SendTask
    future: asyncio.Future


class SendQueue:
    """FIFO queue that serializes and paces outbound sends."""

    def __init__(
        self,
        min_interval_ms: int = 1000,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        """Initialize the queue.

        Args:
            min_interval_ms: Minimum gap between the end of one task and the
                start of the next.
            clock: Monotonic time source in seconds.
            sleep: Coroutine used to wait out the gap.
        """
        self.min_interval = max(0, min_interval_ms) / 1000
        self._clock = clock
        self._sleep = sleep
        self._pending: deque[_QueuedTask] = deque()
        self._worker: asyncio.Task | None = None
        self._in_flight: _QueuedTask | None = None
        self._last_completed: float | None = None
        self._closed = False

    @property
    def pending(self) -> int:
        """Number of tasks waiting to start."""
        return len(self._pending)

    @property
    def is_processing(self) -> bool:
        """True while the worker is running."""
        return self._worker is not None and not self._worker.done()

    def enqueue(self, task: SendTask) -> asyncio.Future:
        """Add a task to the queue.

        The task is not called until its turn.

        Args:
            task: Zero-argument callable returning an awaitable.

        Returns:
            Future resolving to the task's result or failing with its error.
            Futures of tasks dropped by clear() fail with QueueCancelledError.
        """
        loop = asyncio.get_running_loop()
        future = loop.create_future()
        if self._closed:
            future.set_exception(QueueCancelledError("Send queue is closed"))
            return future

        self._pending.append(_QueuedTask(task=task, future=future))
        if not self.is_processing:
            self._worker = loop.create_task(self._process())
        return future

    def clear(self) -> int:
        """Discard every task that has not started yet.

        The in-flight task, if any, is not affected.

        Returns:
            Number of tasks discarded.
        """
        discarded = 0
        while self._pending:
            item = self._pending.popleft()
            if not item.future.done():
                item.future.set_exception(QueueCancelledError("Send task was cancelled"))
            discarded += 1
        logger.info("Cleared message queue (%d pending tasks)", discarded)
        return discarded

    async def close(self) -> None:
        """Discard pending tasks and stop the worker."""
        self._closed = True
        self.clear()
        worker = self._worker
        if worker is not None and not worker.done():
            worker.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await worker
        self._worker = None

    def _wait_time(self) -> float:
        if self._last_completed is None:
            return 0.0
        return self.min_interval - (self._clock() - self._last_completed)

    async def _process(self) -> None:
        try:
            while self._pending:
                wait = self._wait_time()
                if wait > 0:
                    await self._sleep(wait)
                    if not self._pending:
                        break

                item = self._pending.popleft()
                if item.future.done():
                    # Caller gave up on it while it was waiting
                    continue

                self._in_flight = item
                try:
                    result = item.task()
                    if inspect.isawaitable(result):
                        result = await result
                except asyncio.CancelledError:
                    if not item.future.done():
                        item.future.cancel()
                    raise
                except Exception as e:
                    logger.error("Error processing queued task: %s", e)
                    if not item.future.done():
                        item.future.set_exception(e)
                else:
                    if not item.future.done():
                        item.future.set_result(result)
                finally:
                    self._in_flight = None
                    self._last_completed = self._clock()
        finally:
            self._worker = None
