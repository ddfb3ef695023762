"""
In-process change feed.

Services publish row-level change events after they commit; subscribers
(notification relay, query cache) register with a table, an event type and an
optional column filter, the same shape the hosted realtime feed exposes.
"""
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger("halador.change_feed")

INSERT = "INSERT"
UPDATE = "UPDATE"
DELETE = "DELETE"
ANY = "*"


@dataclass
class ChangeEvent:
    table: str
    event_type: str
    new: Dict[str, Any] = field(default_factory=dict)
    old: Dict[str, Any] = field(default_factory=dict)

    @property
    def row(self) -> Dict[str, Any]:
        return self.old if self.event_type == DELETE else self.new


@dataclass
class Subscription:
    table: str
    event_type: str
    callback: Callable[[ChangeEvent], None]
    filter: Optional[Dict[str, Any]] = None
    feed: Optional["ChangeFeed"] = None

    def matches(self, event: ChangeEvent) -> bool:
        if self.table != event.table:
            return False
        if self.event_type not in (ANY, event.event_type):
            return False
        if self.filter:
            row = event.row
            return all(row.get(k) == v for k, v in self.filter.items())
        return True

    def unsubscribe(self) -> None:
        if self.feed is not None:
            self.feed.remove(self)


class ChangeFeed:
    def __init__(self):
        self._lock = threading.Lock()
        self._subscriptions: List[Subscription] = []

    def subscribe(
        self,
        table: str,
        event_type: str,
        callback: Callable[[ChangeEvent], None],
        filter: Optional[Dict[str, Any]] = None,
    ) -> Subscription:
        sub = Subscription(table=table, event_type=event_type, callback=callback, filter=filter, feed=self)
        with self._lock:
            self._subscriptions.append(sub)
        return sub

    def remove(self, sub: Subscription) -> None:
        with self._lock:
            if sub in self._subscriptions:
                self._subscriptions.remove(sub)

    def publish(self, event: ChangeEvent) -> None:
        with self._lock:
            targets = [s for s in self._subscriptions if s.matches(event)]
        for sub in targets:
            # a failing subscriber must not break the write that emitted the event
            try:
                sub.callback(event)
            except Exception:
                logger.exception("Subscriber failed on %s %s", event.event_type, event.table)


change_feed = ChangeFeed()


def row_snapshot(obj, columns) -> Dict[str, Any]:
    """Plain dict of selected attributes, enum members reduced to their values."""
    snapshot = {}
    for name in columns:
        value = getattr(obj, name)
        snapshot[name] = getattr(value, "value", value)
    return snapshot
