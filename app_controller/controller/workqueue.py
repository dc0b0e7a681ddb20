# app_controller/controller/workqueue.py
"""Work queue of record keys with delayed re-adds."""

import heapq
import itertools
import threading
import time
from datetime import timedelta
from typing import Hashable, List, Optional, Set, Tuple


class WorkQueue:
    """
    Set-semantics queue that hands each key to at most one worker at a time.

    - add(key) while key is queued is a no-op
    - add(key) while key is being processed marks it dirty; it is queued
      again when done(key) is called
    - add_after(key, delay) parks key until the delay elapses
    """

    def __init__(self, clock=time.monotonic):
        self._clock = clock
        self._cond = threading.Condition()

        self._queue: List[Hashable] = []
        self._queued: Set[Hashable] = set()
        self._processing: Set[Hashable] = set()
        self._dirty: Set[Hashable] = set()

        self._waiting: List[Tuple[float, int, Hashable]] = []
        self._counter = itertools.count()

        self._shutdown = False

    # -------------------------
    # Producers
    # -------------------------

    def add(self, key: Hashable) -> None:
        with self._cond:
            if self._shutdown:
                return
            self._add_locked(key)

    def add_after(self, key: Hashable, delay: timedelta) -> None:
        seconds = delay.total_seconds()
        if seconds <= 0:
            self.add(key)
            return

        with self._cond:
            if self._shutdown:
                return
            heapq.heappush(self._waiting, (self._clock() + seconds, next(self._counter), key))
            self._cond.notify()

    # -------------------------
    # Consumers
    # -------------------------

    def get(self, timeout: Optional[float] = None) -> Optional[Hashable]:
        """
        Next key to process, or None on shutdown or timeout.
        Callers must call done(key) afterwards.
        """
        deadline = None if timeout is None else self._clock() + timeout

        with self._cond:
            while True:
                if self._shutdown:
                    return None

                self._promote_due_locked()

                if self._queue:
                    key = self._queue.pop(0)
                    self._queued.discard(key)
                    self._processing.add(key)
                    return key

                if deadline is not None and self._clock() >= deadline:
                    return None
                self._cond.wait(self._next_wait_locked(deadline))

    def done(self, key: Hashable) -> None:
        with self._cond:
            self._processing.discard(key)
            if key in self._dirty:
                self._dirty.discard(key)
                self._add_locked(key)

    def shutdown(self) -> None:
        with self._cond:
            self._shutdown = True
            self._cond.notify_all()

    # -------------------------
    # Introspection
    # -------------------------

    def __len__(self) -> int:
        with self._cond:
            return len(self._queue)

    def pending_delayed(self) -> int:
        with self._cond:
            return len(self._waiting)

    @property
    def is_shutdown(self) -> bool:
        return self._shutdown

    # -------------------------
    # Internals (lock held)
    # -------------------------

    def _add_locked(self, key: Hashable) -> None:
        if key in self._processing:
            self._dirty.add(key)
            return
        if key in self._queued:
            return
        self._queue.append(key)
        self._queued.add(key)
        self._cond.notify()

    def _promote_due_locked(self) -> None:
        now = self._clock()
        while self._waiting and self._waiting[0][0] <= now:
            _, _, key = heapq.heappop(self._waiting)
            self._add_locked(key)

    def _next_wait_locked(self, deadline: Optional[float]) -> Optional[float]:
        now = self._clock()
        candidates = []
        if self._waiting:
            candidates.append(self._waiting[0][0] - now)
        if deadline is not None:
            candidates.append(deadline - now)
        if not candidates:
            return None
        return max(min(candidates), 0)
