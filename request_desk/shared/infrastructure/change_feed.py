"""
Change Feed
===========

In-process notification channel for committed row changes.

The storage layer publishes one ChangeEvent per inserted, updated or deleted
row after its transaction commits. Subscribers never receive the rows
themselves: a Subscription is only a coalescing "this collection may be
stale" flag, and consumers refetch through the policy-checked repositories.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Set

from request_desk.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

RowFilter = Callable[["ChangeEvent"], bool]


@dataclass(frozen=True)
class ChangeEvent:
    """A committed change to one row."""
    table: str
    operation: str  # insert | update | delete
    row: Dict[str, Any] = field(default_factory=dict)


class Subscription:
    """
    Stale-flag for one table, optionally narrowed by a row filter.

    Any number of notifications between two waits collapse into one wake-up.
    """

    def __init__(self, feed: "ChangeFeed", table: str, row_filter: Optional[RowFilter] = None):
        self._feed = feed
        self.table = table
        self._row_filter = row_filter
        self._stale = asyncio.Event()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def is_stale(self) -> bool:
        return self._stale.is_set()

    def matches(self, event: ChangeEvent) -> bool:
        if event.table != self.table:
            return False
        return self._row_filter is None or self._row_filter(event)

    def notify(self) -> None:
        self._stale.set()

    async def wait(self) -> None:
        """Block until stale or closed, then clear the flag."""
        await self._stale.wait()
        self._stale.clear()

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._feed._discard(self)
            # Wake a pending wait() so its consumer can observe ``closed``
            self._stale.set()

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


class ChangeFeed:
    """
    Fan-out of ChangeEvents to matching subscriptions.

    Single-process only: subscribers are woken by commits made through this
    process's session maker. Other uvicorn workers, and writes made directly
    against the database, never reach them. Live streams therefore need a
    single long-running worker; the Mangum entry point cannot hold them open.
    """

    def __init__(self):
        self._subscriptions: Set[Subscription] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def subscribe(self, table: str, row_filter: Optional[RowFilter] = None) -> Subscription:
        subscription = Subscription(self, table, row_filter)
        self._subscriptions.add(subscription)
        return subscription

    def publish(self, event: ChangeEvent) -> int:
        """Mark every matching subscription stale. Returns how many matched."""
        notified = 0
        for subscription in list(self._subscriptions):
            try:
                matched = subscription.matches(event)
            except Exception as e:
                logger.error(
                    "Change feed row filter failed",
                    extra={"table": event.table, "error": str(e)}
                )
                continue
            if matched:
                subscription.notify()
                notified += 1
        return notified

    def _discard(self, subscription: Subscription) -> None:
        self._subscriptions.discard(subscription)
