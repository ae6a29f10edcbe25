"""
Metrics Store for the MiFi Monitor
==================================

Latest-value cache shared by the pollers and every viewer. It is created
once by whoever wires the application together and handed to the Poller
and to consumers, rather than living in a module-level global.

Subscribers get the current value immediately, then every later update in
the order updates were applied. Each subscriber has its own unbounded
queue, so a slow reader never makes the store skip or merge values.

"""

import logging
import queue
import threading
from typing import Callable, Iterator, List, Optional

from .models import Metrics

logger = logging.getLogger("mifi-monitor")

MetricsListener = Callable[[Metrics], None]

_CLOSED = object()


class SubscriptionClosed(Exception):
    """Raised by Subscription.get once the subscription is closed."""


class Subscription:
    """Iterator over the store's values for one subscriber."""

    def __init__(self, store: "MetricsStore") -> None:
        self._store = store
        self._queue: "queue.Queue[object]" = queue.Queue()
        self.closed = False

    def _push(self, metrics: Metrics) -> None:
        self._queue.put(metrics)

    def get(self, timeout: Optional[float] = None) -> Metrics:
        """
        Wait for the next value.

        Args:
            timeout: Seconds to wait, None to wait forever

        Raises:
            queue.Empty: If no value arrived within ``timeout``
            SubscriptionClosed: If the subscription was closed
        """
        item = self._queue.get(timeout=timeout)
        if item is _CLOSED:
            # Leave the marker for any other consumer of this subscription
            self._queue.put(_CLOSED)
            raise SubscriptionClosed
        return item  # type: ignore[return-value]

    def pending(self) -> int:
        """Number of values queued and not yet consumed."""
        return self._queue.qsize()

    def close(self) -> None:
        """Detach from the store; iteration ends after queued values are drained."""
        if self.closed:
            return
        self.closed = True
        self._store._unsubscribe(self)
        self._queue.put(_CLOSED)

    def __iter__(self) -> Iterator[Metrics]:
        while True:
            try:
                yield self.get()
            except SubscriptionClosed:
                return

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class MetricsStore:
    """
    Process-wide latest Metrics with publish/subscribe.

    Writes are serialized by a lock, so concurrent writers are tolerated;
    the last completed ``update`` is what ``current()`` returns.
    """

    def __init__(self, initial: Optional[Metrics] = None) -> None:
        self._lock = threading.RLock()
        self._current = initial if initial is not None else Metrics()
        self._subscriptions: List[Subscription] = []
        self._listeners: List[MetricsListener] = []
        self.update_count = 0

    def current(self) -> Metrics:
        """Latest value; a default Metrics before the first update."""
        with self._lock:
            return self._current

    def update(self, metrics: Metrics) -> None:
        """Replace the current value and notify every subscriber and listener."""
        with self._lock:
            self._current = metrics
            self.update_count += 1
            for subscription in self._subscriptions:
                subscription._push(metrics)
            for listener in list(self._listeners):
                try:
                    listener(metrics)
                except Exception as e:
                    logger.error(f"Metrics listener {listener!r} failed: {e}")

    def subscribe(self) -> Subscription:
        """Subscribe to values, starting with the current one."""
        subscription = Subscription(self)
        with self._lock:
            subscription._push(self._current)
            self._subscriptions.append(subscription)
        return subscription

    def add_listener(self, listener: MetricsListener) -> None:
        """Call ``listener`` synchronously on every update."""
        with self._lock:
            self._listeners.append(listener)

    def remove_listener(self, listener: MetricsListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def _unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)


__all__ = ["MetricsListener", "MetricsStore", "Subscription", "SubscriptionClosed"]
