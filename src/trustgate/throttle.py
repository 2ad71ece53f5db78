"""Concurrency throttle for outbound registry calls.

A ``Throttle`` bounds how many operations run at once and paces how often
a slot can be re-used. Operations beyond the concurrency limit wait in a
FIFO queue. A slot is held until at least ``min_delay`` milliseconds have
passed since its operation was dispatched, so two dispatches that share a
slot are never closer together than ``min_delay``. An operation that
already ran longer than ``min_delay`` incurs no extra wait.

All bookkeeping happens on the event loop thread between ``await`` points,
so the running count and the queue are only ever mutated by one coroutine
at a time.

Usage::

    throttle = Throttle(max_concurrent=2, min_delay=100)
    data = await throttle.throttle(lambda: client.get(url))
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

from trustgate.exceptions import ConfigError

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_CONCURRENT: int = 5
DEFAULT_MIN_DELAY: int = 0


@dataclass
class ThrottleTicket:
    """An outbound-call slot handed to one operation.

    Attributes:
        sequence: Monotonic dispatch number (1 for the first dispatch).
        dispatched_at: Event loop time (seconds) when the operation started.
    """

    sequence: int
    dispatched_at: float = 0.0


class Throttle:
    """FIFO scheduler bounding concurrency and pacing of async operations.

    Args:
        max_concurrent: Maximum number of operations running at once (> 0).
        min_delay: Minimum milliseconds between successive dispatches on a
            slot (>= 0).

    Raises:
        ConfigError: If either limit is out of range.
    """

    def __init__(
        self,
        max_concurrent: int = DEFAULT_MAX_CONCURRENT,
        min_delay: int = DEFAULT_MIN_DELAY,
    ) -> None:
        self.max_concurrent = DEFAULT_MAX_CONCURRENT
        self.min_delay = DEFAULT_MIN_DELAY
        self.configure(max_concurrent, min_delay)
        self.running_count = 0
        self._queue: deque[asyncio.Future[None]] = deque()
        self._dispatched = 0

    def configure(
        self,
        max_concurrent: int = DEFAULT_MAX_CONCURRENT,
        min_delay: int = DEFAULT_MIN_DELAY,
    ) -> None:
        """Update the limits. Operations already running are not affected."""
        if not isinstance(max_concurrent, int) or max_concurrent <= 0:
            raise ConfigError(f"max_concurrent must be a positive int, got {max_concurrent!r}")
        if not isinstance(min_delay, int) or min_delay < 0:
            raise ConfigError(f"min_delay must be a non-negative int, got {min_delay!r}")
        self.max_concurrent = max_concurrent
        self.min_delay = min_delay

    @property
    def queued_count(self) -> int:
        """Number of operations waiting for a slot."""
        return sum(1 for fut in self._queue if not fut.done())

    async def throttle(self, op: Callable[[], Awaitable[T]]) -> T:
        """Run ``op`` once a slot is free and return its result.

        The operation's exception, if any, propagates to the caller after
        the slot has been released.
        """
        await self._acquire()
        loop = asyncio.get_running_loop()
        self._dispatched += 1
        ticket = ThrottleTicket(sequence=self._dispatched, dispatched_at=loop.time())
        try:
            return await op()
        finally:
            try:
                await self._hold(ticket)
            finally:
                self._release()

    async def _acquire(self) -> None:
        if self.running_count < self.max_concurrent and not self._queue:
            self.running_count += 1
            return

        waiter: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._queue.append(waiter)
        logger.debug("Throttle full (%d running), queued operation", self.running_count)
        try:
            await waiter
        except asyncio.CancelledError:
            if waiter.done() and not waiter.cancelled():
                # The slot was handed over just before cancellation.
                self._release()
            else:
                try:
                    self._queue.remove(waiter)
                except ValueError:
                    pass
            raise

    async def _hold(self, ticket: ThrottleTicket) -> None:
        if self.min_delay <= 0:
            return
        elapsed = asyncio.get_running_loop().time() - ticket.dispatched_at
        remaining = self.min_delay / 1000.0 - elapsed
        if remaining > 0:
            await asyncio.sleep(remaining)

    def _release(self) -> None:
        # Hand the slot straight to the next waiter so the count never dips
        # below the number of operations that are actually running.
        while self._queue:
            waiter = self._queue.popleft()
            if not waiter.done():
                waiter.set_result(None)
                return
        self.running_count -= 1
