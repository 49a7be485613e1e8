"""
In-process change notifications and stale-response suppression.

Every view holds its own Subscription and refetches fully on any
notification; nothing is merged incrementally, so duplicate or reordered
notifications only cost a redundant refetch.
"""

import asyncio
import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)

SUBSCRIPTION_QUEUE_SIZE = 100


@dataclass(frozen=True)
class ChangeEvent:
    """A row of `table` was inserted, updated or deleted."""
    table: str
    event: str
    record_id: int


class Subscription:
    """One subscriber's private queue of change events. Never shared."""

    def __init__(self, feed: "ChangeFeed", table: str):
        self.table = table
        self._feed = feed
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=SUBSCRIPTION_QUEUE_SIZE)
        self.closed = False

    def _deliver(self, event: Optional[ChangeEvent]) -> None:
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            # Pending events already guarantee a refetch
            logger.debug(f"Subscription on {self.table} full, dropping {event}")

    async def get(self) -> Optional[ChangeEvent]:
        """Wait for the next event. Returns None once the subscription is closed."""
        if self.closed and self._queue.empty():
            return None
        return await self._queue.get()

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._feed._remove(self)
        # Wake up a pending get()
        try:
            self._queue.put_nowait(None)
        except asyncio.QueueFull:
            pass

    def __aiter__(self):
        return self

    async def __anext__(self) -> ChangeEvent:
        event = await self.get()
        if event is None:
            raise StopAsyncIteration
        return event

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


class ChangeFeed:
    """Fan-out of table change events to isolated subscriptions."""

    def __init__(self):
        self._subscribers: Dict[str, List[Subscription]] = defaultdict(list)

    def subscribe(self, table: str) -> Subscription:
        subscription = Subscription(self, table)
        self._subscribers[table].append(subscription)
        return subscription

    def _remove(self, subscription: Subscription) -> None:
        subscribers = self._subscribers.get(subscription.table, [])
        if subscription in subscribers:
            subscribers.remove(subscription)

    def subscriber_count(self, table: str) -> int:
        return len(self._subscribers.get(table, []))

    def publish(self, table: str, event: str, record_id: int) -> int:
        """Deliver an event to every current subscriber of `table`."""
        change = ChangeEvent(table=table, event=event, record_id=record_id)
        subscribers = list(self._subscribers.get(table, []))
        for subscription in subscribers:
            subscription._deliver(change)
        logger.debug(f"Published {event} on {table}#{record_id} to {len(subscribers)} subscribers")
        return len(subscribers)


class RequestSequencer:
    """
    Tags outstanding fetches so only the latest one may update a view.

    After close() no ticket is current, which also covers completions that
    arrive after the view was torn down.
    """

    def __init__(self):
        self._latest = 0
        self._active = True

    def next(self) -> int:
        self._latest += 1
        return self._latest

    def is_current(self, ticket: int) -> bool:
        return self._active and ticket == self._latest

    @property
    def active(self) -> bool:
        return self._active

    def close(self) -> None:
        self._active = False


# Process-wide feed used by the sales service and live endpoints
change_feed = ChangeFeed()
