"""
Live Collections
================

Keeps a view of a collection fresh by refetching it whenever its change
feed subscription goes stale.
"""

from typing import AsyncIterator, Awaitable, Callable, Generic, TypeVar

from request_desk.shared.infrastructure.change_feed import Subscription
from request_desk.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class LiveCollection(Generic[T]):
    """
    Snapshot stream over a refetchable collection.

    Yields one snapshot when opened and then one per stale wake-up. Any
    number of notifications that arrive while a refetch is running collapse
    into a single follow-up refetch, so the newest snapshot always wins.
    The subscription should be opened before the first fetch so that no
    change slips between the fetch and the first wait.
    """

    def __init__(self, subscription: Subscription, fetch: Callable[[], Awaitable[T]]):
        self._subscription = subscription
        self._fetch = fetch
        self.refresh_count = 0

    async def _refresh(self) -> T:
        snapshot = await self._fetch()
        self.refresh_count += 1
        return snapshot

    async def snapshots(self) -> AsyncIterator[T]:
        try:
            yield await self._refresh()
            while True:
                await self._subscription.wait()
                if self._subscription.closed:
                    break
                yield await self._refresh()
        finally:
            self._subscription.close()
            logger.debug(
                "Live collection closed",
                extra={"table": self._subscription.table, "refreshes": self.refresh_count}
            )

    def close(self) -> None:
        self._subscription.close()
