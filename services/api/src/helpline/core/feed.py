"""In-process push-update hub for collection snapshots.

Repositories publish every committed write; subscribers get the full,
re-queried result list of their query on subscribe and after each matching
change, the same shape a realtime document listener delivers.
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable

logger = logging.getLogger(__name__)

Snapshot = list[dict]
Query = Callable[[], Snapshot]
Callback = Callable[[Snapshot], None]
Match = Callable[[dict], bool]


@dataclass(eq=False)
class Subscription:
    collection: str
    query: Query
    callback: Callback
    match: Match | None = None
    active: bool = field(default=True)
    # Held across query and callback: one delivery at a time, in re-query order.
    _delivering: Any = field(default_factory=threading.RLock, repr=False)

    def deliver(self) -> None:
        with self._delivering:
            if not self.active:
                return
            try:
                self.callback(self.query())
            except Exception as exc:
                logger.error("feed_delivery_failed", extra={
                    "collection": self.collection, "error": str(exc),
                })


class ChangeFeed:
    """Subscriber registry keyed by collection name."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subs: dict[str, list[Subscription]] = {}

    def subscribe(
        self,
        collection: str,
        query: Query,
        callback: Callback,
        match: Match | None = None,
    ) -> Callable[[], None]:
        """Register a listener and deliver the current snapshot immediately.

        Returns a callable that removes the listener. Calling it more than
        once is a no-op.
        """
        sub = Subscription(collection=collection, query=query, callback=callback, match=match)
        with self._lock:
            self._subs.setdefault(collection, []).append(sub)

        sub.deliver()

        def unsubscribe() -> None:
            sub.active = False
            with self._lock:
                subs = self._subs.get(collection, [])
                if sub in subs:
                    subs.remove(sub)

        return unsubscribe

    def publish(self, collection: str, doc: dict[str, Any]) -> None:
        """Notify listeners of `collection` that `doc` was written."""
        with self._lock:
            targets = list(self._subs.get(collection, []))

        for sub in targets:
            if sub.match is not None:
                try:
                    if not sub.match(doc):
                        continue
                except Exception as exc:
                    logger.warning("feed_match_failed", extra={
                        "collection": collection, "error": str(exc),
                    })
                    continue
            sub.deliver()

    def subscriber_count(self, collection: str) -> int:
        with self._lock:
            return len(self._subs.get(collection, []))


# Process-wide feed shared by repositories and websocket listeners.
default_feed = ChangeFeed()
