from __future__ import annotations

import logging
import queue
import threading
from typing import Optional, Set

from ..state import DrawState


class Subscription:
    """One observer's bounded mailbox of state snapshots."""

    def __init__(self, notifier: "ChangeNotifier", maxsize: int) -> None:
        self._notifier = notifier
        self._queue: "queue.Queue[DrawState]" = queue.Queue(maxsize=maxsize)
        self._closed = threading.Event()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def offer(self, state: DrawState) -> bool:
        if self.closed:
            return False
        try:
            self._queue.put_nowait(state)
        except queue.Full:
            return False
        return True

    def get(self, timeout: Optional[float] = None) -> Optional[DrawState]:
        """Return the next snapshot, or ``None`` when nothing arrived in time."""
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def pending(self) -> int:
        return self._queue.qsize()

    def mark_closed(self) -> None:
        self._closed.set()

    def close(self) -> None:
        self.mark_closed()
        self._notifier.unsubscribe(self)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class ChangeNotifier:
    def __init__(
        self,
        queue_size: int = 64,
        initial: Optional[DrawState] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._queue_size = queue_size
        self._latest = initial or DrawState()
        self._subscribers: Set[Subscription] = set()
        self._lock = threading.Lock()
        self._logger = logger or logging.getLogger("drawpool.notifier")

    @property
    def latest(self) -> DrawState:
        return self._latest

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def subscribe(self) -> Subscription:
        subscription = Subscription(self, self._queue_size)
        with self._lock:
            subscription.offer(self._latest)
            self._subscribers.add(subscription)
            count = len(self._subscribers)
        self._logger.info("Subscriber joined at version %s (%s active)", self._latest.version, count)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            removed = subscription in self._subscribers
            self._subscribers.discard(subscription)
            count = len(self._subscribers)
        if removed:
            self._logger.info("Subscriber left (%s active)", count)

    def publish(self, state: DrawState) -> int:
        """Fan ``state`` out to every subscriber without blocking.

        Returns the number of subscribers that received it. A subscriber whose
        queue is full is dropped; it reconnects to get a fresh baseline.
        """
        lagging = []
        delivered = 0
        with self._lock:
            self._latest = state
            for subscription in self._subscribers:
                if subscription.offer(state):
                    delivered += 1
                else:
                    lagging.append(subscription)
            for subscription in lagging:
                subscription.mark_closed()
                self._subscribers.discard(subscription)
        for subscription in lagging:
            self._logger.warning(
                "Dropped subscriber lagging behind at version %s (%s queued)",
                state.version,
                subscription.pending(),
            )
        return delivered
