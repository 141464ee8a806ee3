"""
In-process push subscriptions with explicit cancellation.

A SubscriptionRegistry maps a key (ride id, driver id, status...) to the
callbacks listening on it. Every subscribe() hands back a Subscription whose
cancel() removes the callback; publishing never blocks on a failing listener.
"""

import logging
from threading import RLock
from typing import Any, Callable, Dict, Hashable, List

logger = logging.getLogger(__name__)


class Subscription:
    """Handle returned to a subscriber."""

    def __init__(self, registry: "SubscriptionRegistry", key: Hashable, callback: Callable[[Any], None]):
        self._registry = registry
        self.key = key
        self.callback = callback
        self.active = True

    def cancel(self) -> None:
        if not self.active:
            return
        self.active = False
        self._registry._remove(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.cancel()


class SubscriptionRegistry:
    def __init__(self):
        self._lock = RLock()
        self._subscribers: Dict[Hashable, List[Subscription]] = {}

    def add(self, key: Hashable, callback: Callable[[Any], None]) -> Subscription:
        subscription = Subscription(self, key, callback)
        with self._lock:
            self._subscribers.setdefault(key, []).append(subscription)
        return subscription

    def _remove(self, subscription: Subscription) -> None:
        with self._lock:
            subs = self._subscribers.get(subscription.key, [])
            if subscription in subs:
                subs.remove(subscription)
            if not subs:
                self._subscribers.pop(subscription.key, None)

    def count(self, key: Hashable) -> int:
        with self._lock:
            return len(self._subscribers.get(key, []))

    def keys(self) -> list:
        with self._lock:
            return list(self._subscribers)

    def publish(self, key: Hashable, value: Any) -> int:
        """Invoke every active callback for key in subscription order."""
        with self._lock:
            targets = list(self._subscribers.get(key, []))

        delivered = 0
        for subscription in targets:
            if not subscription.active:
                continue
            try:
                subscription.callback(value)
                delivered += 1
            except Exception:
                logger.exception("Subscriber callback failed for key %s", key)
        return delivered
