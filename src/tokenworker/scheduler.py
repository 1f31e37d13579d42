"""Timer-driven work scheduler.

The scheduler is a two-state machine:

    IDLE  --kick-->  ARMED
    ARMED --tick (work was pending)-->  ARMED
    ARMED --tick (nothing pending)-->   IDLE

While ARMED a repeating timer fires every ``interval`` seconds on the event
loop. Each firing calls the step function, which performs at most one work
quantum and always flushes token updates. Because the step reports whether
work was pending *before* the quantum, the scheduler stays armed for one
more tick after the queue drains, and that tick sends the final flush.
Nothing is sent while IDLE.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from enum import Enum

from tokenworker.logging import TRACE, get_logger

log = get_logger("scheduler")

DEFAULT_INTERVAL = 0.005


class SchedulerStatus(Enum):
    """Whether the repeating timer is active."""

    IDLE = "idle"
    ARMED = "armed"


def kick(status: SchedulerStatus) -> SchedulerStatus:
    """Transition for a kick: always armed afterwards."""
    return SchedulerStatus.ARMED


def after_tick(status: SchedulerStatus, had_work: bool) -> SchedulerStatus:
    """Transition after a tick fired."""
    if status is SchedulerStatus.IDLE:
        return SchedulerStatus.IDLE
    return SchedulerStatus.ARMED if had_work else SchedulerStatus.IDLE


class WorkScheduler:
    """Drives a step function on a repeating event loop timer.

    Example:
        scheduler = WorkScheduler(step, interval=0.005)
        scheduler.kick()  # arms the timer; step() runs every 5ms until idle
    """

    def __init__(
        self,
        step: Callable[[], bool],
        *,
        interval: float = DEFAULT_INTERVAL,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        """Initialize the scheduler.

        Args:
            step: Called on every tick. Returns True when work was pending.
            interval: Timer period in seconds.
            loop: Event loop for the timer. Defaults to the running loop at
                the time of the first kick.
        """
        self._step = step
        self._interval = interval
        self._loop = loop
        self._status = SchedulerStatus.IDLE
        self._handle: asyncio.TimerHandle | None = None
        self._ticks = 0

    @property
    def status(self) -> SchedulerStatus:
        return self._status

    @property
    def armed(self) -> bool:
        return self._status is SchedulerStatus.ARMED

    @property
    def ticks(self) -> int:
        """Number of ticks fired so far."""
        return self._ticks

    def kick(self) -> None:
        """Arm the timer. Idempotent while already armed."""
        self._status = kick(self._status)
        if self._handle is None:
            log.log(TRACE, "Scheduler armed")
            self._schedule()

    def tick(self) -> None:
        """Fire one tick now.

        Called by the timer; tests may call it directly.
        """
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        if self._status is SchedulerStatus.IDLE:
            return

        self._ticks += 1
        had_work = self._step()
        self._status = after_tick(self._status, had_work)

        if self._status is SchedulerStatus.ARMED:
            self._schedule()
        else:
            log.log(TRACE, "Scheduler idle after %d ticks", self._ticks)

    def stop(self) -> None:
        """Cancel the timer and go idle."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self._status = SchedulerStatus.IDLE

    def _schedule(self) -> None:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        self._handle = self._loop.call_later(self._interval, self.tick)
