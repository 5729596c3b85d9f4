"""
Scheduler
=========

Deferred one-shot tasks for the engine (spawn delays, demo auto-stop,
demo restart, end-of-run settlement).

Two backends share one interface, call_later(delay, callback) -> handle with
handle.cancel():

- ManualScheduler: virtual clock advanced by the caller, one frame at a time.
  Used by the Gymnasium environment, the evaluation harness and tests.
- AsyncioScheduler: real time on an asyncio event loop.

TimerRegistry sits on top and tracks at most one live task per TimerKind.
A task that fires after it was superseded is dropped even if the backend
failed to cancel it.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


class TimerKind(str, Enum):
    SPAWN = "spawn"
    AUTOPLAY = "autoplay"
    DEMO_RESTART = "demo_restart"
    SETTLEMENT = "settlement"


@dataclass(order=True)
class ScheduledTask:
    """A task on the ManualScheduler's virtual clock."""
    due: float
    seq: int
    callback: Callable[[], None] = field(compare=False)
    cancelled: bool = field(default=False, compare=False)

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """
    Virtual-clock scheduler.

    Nothing fires until advance() is called. Tasks due within the advanced
    window fire in due-time order, ties broken by arming order; tasks armed
    by a firing task also fire if they fall inside the window.
    """

    def __init__(self):
        self._now: float = 0.0
        self._queue: List[ScheduledTask] = []
        self._seq = itertools.count()

    @property
    def now(self) -> float:
        """Current virtual time in seconds."""
        return self._now

    @property
    def pending(self) -> int:
        """Number of live (not cancelled) tasks."""
        return sum(1 for task in self._queue if not task.cancelled)

    def next_due(self) -> Optional[float]:
        """Due time of the earliest live task, or None."""
        self._drop_cancelled_head()
        return self._queue[0].due if self._queue else None

    def call_later(self, delay: float, callback: Callable[[], None]) -> ScheduledTask:
        task = ScheduledTask(due=self._now + max(0.0, delay), seq=next(self._seq), callback=callback)
        heapq.heappush(self._queue, task)
        return task

    def advance(self, dt: float) -> int:
        """
        Move the clock forward by dt and fire everything that became due.

        Returns:
            Number of tasks fired.
        """
        return self._advance_to(self._now + max(0.0, dt))

    def _advance_to(self, target: float) -> int:
        fired = 0
        while True:
            self._drop_cancelled_head()
            if not self._queue or self._queue[0].due > target:
                break
            task = heapq.heappop(self._queue)
            self._now = max(self._now, task.due)
            task.callback()
            fired += 1
        self._now = target
        return fired

    def run_until_idle(self, limit: float = 60.0) -> int:
        """
        Jump from task to task until none are left or `limit` seconds pass.

        Returns:
            Number of tasks fired.
        """
        deadline = self._now + limit
        fired = 0
        while True:
            due = self.next_due()
            if due is None or due > deadline:
                break
            fired += self._advance_to(due)
        return fired

    def clear(self) -> None:
        """Drop every pending task."""
        self._queue.clear()

    def _drop_cancelled_head(self) -> None:
        while self._queue and self._queue[0].cancelled:
            heapq.heappop(self._queue)


class AsyncioScheduler:
    """Real-time scheduler on an asyncio event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    @property
    def now(self) -> float:
        return self.loop.time()

    def call_later(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        return self.loop.call_later(max(0.0, delay), callback)


@dataclass(eq=False)
class TimerToken:
    """Identity of one armed task. Compared by identity, never by value."""
    kind: TimerKind
    generation: int
    handle: Any = None
    fired: bool = False


class TimerRegistry:
    """
    At most one live task per TimerKind.

    Arming a kind cancels the previous task of that kind. Each fire is
    checked against the live token for its kind, so a superseded task that
    still fires does nothing.
    """

    def __init__(self, scheduler):
        """
        Initialize timer registry.

        Args:
            scheduler: Backend with call_later(delay, callback) -> handle.
        """
        self._scheduler = scheduler
        self._live: Dict[TimerKind, TimerToken] = {}
        self._generation = itertools.count(1)

    @property
    def scheduler(self):
        return self._scheduler

    def arm(self, kind: TimerKind, delay: float, callback: Callable[[], None]) -> TimerToken:
        """Schedule callback after delay seconds, replacing any live task of this kind."""
        self.cancel(kind)
        token = TimerToken(kind=kind, generation=next(self._generation))

        def fire() -> None:
            if self._live.get(kind) is not token:
                logger.debug("Dropped stale %s timer (generation %d)", kind.value, token.generation)
                return
            del self._live[kind]
            token.fired = True
            callback()

        token.handle = self._scheduler.call_later(delay, fire)
        self._live[kind] = token
        return token

    def cancel(self, kind: TimerKind) -> bool:
        """Cancel the live task of this kind. Returns True if one was live."""
        token = self._live.pop(kind, None)
        if token is None:
            return False
        if token.handle is not None:
            token.handle.cancel()
        return True

    def cancel_all(self) -> None:
        for kind in list(self._live):
            self.cancel(kind)

    def is_armed(self, kind: TimerKind) -> bool:
        return kind in self._live

    def armed_kinds(self) -> List[TimerKind]:
        return list(self._live)
