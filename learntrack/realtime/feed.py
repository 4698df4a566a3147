"""In-process row change feed.

Subscribers register a table, an equality filter and an event mask, and
are called for every published change matching all three. A subscription
stays live until it is explicitly released.
"""

from __future__ import annotations

import asyncio
import inspect
import itertools
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, Optional, Set

import structlog

logger = structlog.get_logger()


class ChangeType(str, Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


ALL_EVENTS: FrozenSet[ChangeType] = frozenset(ChangeType)


@dataclass(frozen=True)
class ChangeEvent:
    """A committed change to one row."""

    table: str
    type: ChangeType
    new: Dict[str, Any] = field(default_factory=dict)
    old: Dict[str, Any] = field(default_factory=dict)

    @property
    def record(self) -> Dict[str, Any]:
        """Row the filter is evaluated against."""
        return self.old if self.type == ChangeType.DELETE else self.new


class Subscription:
    """Handle for a standing subscription. Release is idempotent."""

    def __init__(self, release: Callable[[], None]):
        self._release = release
        self.active = True

    def release(self) -> None:
        if not self.active:
            return
        self.active = False
        self._release()


@dataclass
class _Entry:
    table: str
    filters: Dict[str, Any]
    events: FrozenSet[ChangeType]
    callback: Callable[[ChangeEvent], Any]

    def matches(self, event: ChangeEvent) -> bool:
        if event.table != self.table or event.type not in self.events:
            return False
        record = event.record
        return all(record.get(key) == value for key, value in self.filters.items())


class ChangeFeed:
    """Fan-out of row changes to filtered subscribers."""

    def __init__(self):
        self._entries: Dict[int, _Entry] = {}
        self._ids = itertools.count(1)
        self._tasks: Set[asyncio.Task] = set()

    def subscribe(
        self,
        table: str,
        filters: Dict[str, Any],
        callback: Callable[[ChangeEvent], Any],
        events: FrozenSet[ChangeType] = ALL_EVENTS,
    ) -> Subscription:
        entry_id = next(self._ids)
        self._entries[entry_id] = _Entry(table, dict(filters), frozenset(events), callback)
        logger.debug("Feed subscription opened", table=table, filters=filters, subscription=entry_id)

        def release() -> None:
            self._entries.pop(entry_id, None)
            logger.debug("Feed subscription released", table=table, subscription=entry_id)

        return Subscription(release)

    def publish(self, event: ChangeEvent) -> int:
        """Deliver an event; returns the number of subscribers notified."""
        delivered = 0
        for entry in list(self._entries.values()):
            if not entry.matches(event):
                continue
            delivered += 1
            result = entry.callback(event)
            if inspect.isawaitable(result):
                task = asyncio.ensure_future(result)
                self._tasks.add(task)
                task.add_done_callback(self._finish)
        logger.debug("Change published", table=event.table, type=event.type.value, delivered=delivered)
        return delivered

    def _finish(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Feed callback failed", error=str(task.exception()))

    def subscription_count(self, table: Optional[str] = None) -> int:
        if table is None:
            return len(self._entries)
        return sum(1 for entry in self._entries.values() if entry.table == table)

    async def drain(self) -> None:
        """Wait for callbacks scheduled so far, including ones they schedule."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


_change_feed: Optional[ChangeFeed] = None


def get_change_feed() -> ChangeFeed:
    """Get the global change feed."""
    global _change_feed
    if _change_feed is None:
        _change_feed = ChangeFeed()
    return _change_feed


def reset_change_feed() -> None:
    """Reset the change feed (for testing)."""
    global _change_feed
    _change_feed = None
