"""Rate-limited, de-duplicating work queue.

Semantics follow the client-go work queue the controller pattern is built
around:

* A key waiting in the queue is stored once, however often it is added.
* A key being processed is never handed to a second worker. Adding it again
  marks it dirty, and it is re-queued when the first worker calls ``done``.
* ``add_rate_limited`` re-adds a key after a per-key exponential backoff,
  which ``forget`` resets after a successful pass.
"""

from __future__ import annotations

import heapq
import itertools
import threading
import time
from collections import deque
from collections.abc import Callable

import structlog

logger = structlog.get_logger()

DEFAULT_BASE_DELAY = 0.005
DEFAULT_MAX_DELAY = 1000.0


class RateLimitingQueue:
    """Thread-safe queue of reconcile keys."""

    def __init__(
        self,
        name: str,
        *,
        base_delay: float = DEFAULT_BASE_DELAY,
        max_delay: float = DEFAULT_MAX_DELAY,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.name = name
        self._base_delay = base_delay
        self._max_delay = max_delay
        self._clock = clock

        self._cond = threading.Condition()
        self._queue: deque[str] = deque()
        self._dirty: set[str] = set()
        self._processing: set[str] = set()
        self._waiting: list[tuple[float, int, str]] = []
        self._sequence = itertools.count()
        self._failures: dict[str, int] = {}
        self._shutting_down = False

        self._log = logger.bind(entity="workqueue", queue=name)

    def __len__(self) -> int:
        with self._cond:
            return len(self._queue)

    @property
    def shutting_down(self) -> bool:
        """Whether ``shut_down`` has been called."""
        with self._cond:
            return self._shutting_down

    def add(self, item: str) -> None:
        """Queue ``item`` unless it is already waiting."""
        with self._cond:
            self._add_locked(item)

    def _add_locked(self, item: str) -> None:
        if self._shutting_down or item in self._dirty:
            return
        self._dirty.add(item)
        if item in self._processing:
            return
        self._queue.append(item)
        self._cond.notify()

    def add_after(self, item: str, delay: float) -> None:
        """Queue ``item`` once ``delay`` seconds have passed."""
        if delay <= 0:
            self.add(item)
            return
        with self._cond:
            if self._shutting_down:
                return
            ready_at = self._clock() + delay
            heapq.heappush(self._waiting, (ready_at, next(self._sequence), item))
            self._cond.notify()

    def when(self, item: str) -> float:
        """Backoff for the next retry of ``item``; counts as one failure."""
        with self._cond:
            failures = self._failures.get(item, 0)
            self._failures[item] = failures + 1
        return min(self._base_delay * (2**failures), self._max_delay)

    def add_rate_limited(self, item: str) -> None:
        """Re-queue ``item`` after its exponential backoff."""
        delay = self.when(item)
        self._log.debug("requeue_with_backoff", key=item, delay=delay)
        self.add_after(item, delay)

    def forget(self, item: str) -> None:
        """Reset the failure count of ``item``."""
        with self._cond:
            self._failures.pop(item, None)

    def num_requeues(self, item: str) -> int:
        """How many times ``item`` has been rate-limited since its last forget."""
        with self._cond:
            return self._failures.get(item, 0)

    def _promote_ready_locked(self) -> float | None:
        """Move due delayed items into the queue; return seconds to the next one."""
        now = self._clock()
        while self._waiting and self._waiting[0][0] <= now:
            _, _, item = heapq.heappop(self._waiting)
            self._add_locked(item)
        if self._waiting:
            return max(self._waiting[0][0] - now, 0.0)
        return None

    def get(self, timeout: float | None = None) -> tuple[str | None, bool]:
        """Block until an item is available.

        Args:
            timeout: Give up after this many seconds and return ``(None, False)``.

        Returns:
            ``(item, shutdown)``. ``shutdown`` is True once the queue has been
            shut down and drained; the item is then None.
        """
        deadline = None if timeout is None else self._clock() + timeout
        with self._cond:
            while True:
                next_ready = self._promote_ready_locked()
                if self._queue:
                    item = self._queue.popleft()
                    self._processing.add(item)
                    self._dirty.discard(item)
                    return item, False
                if self._shutting_down:
                    return None, True

                wait_for = next_ready
                if deadline is not None:
                    remaining = deadline - self._clock()
                    if remaining <= 0:
                        return None, False
                    wait_for = remaining if wait_for is None else min(wait_for, remaining)
                self._cond.wait(wait_for)

    def done(self, item: str) -> None:
        """Mark ``item`` processed; re-queue it if it was added meanwhile."""
        with self._cond:
            self._processing.discard(item)
            if item in self._dirty:
                self._queue.append(item)
                self._cond.notify()

    def shut_down(self) -> None:
        """Stop accepting items and wake every waiting worker.

        Items already queued are still handed out; delayed retries are
        dropped.
        """
        with self._cond:
            self._shutting_down = True
            self._waiting.clear()
            self._cond.notify_all()
        self._log.debug("workqueue_shut_down")
