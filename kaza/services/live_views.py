"""
Live views: state holders that refetch on sales changes.

Each view owns one subscription and one RequestSequencer. A refresh that was
superseded by a newer one, or that completes after close(), is discarded.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from kaza.db import get_db_context
from kaza.models import Profile
from kaza.services.errors import CommissionError
from kaza.services.manager_commission import manager_commission_card
from kaza.services.realtime import ChangeFeed, RequestSequencer, Subscription, change_feed
from kaza.services.sales import SALES_TABLE, list_sales

logger = logging.getLogger(__name__)

FAILURE_NOTICE = "Could not load data, please try again"

UpdateCallback = Callable[["LiveView"], Awaitable[None]]


class LiveView:
    """
    Base class. Subclasses implement fetch().

    on_update, when set, is awaited after every applied refresh and after
    every current failure, so a transport can push the new state.

    Usage:
        view = SalesListView(viewer)
        await view.start()
        ...
        await view.close()
    """

    table = SALES_TABLE

    def __init__(
        self,
        feed: Optional[ChangeFeed] = None,
        session_factory: Callable = get_db_context,
        on_update: Optional[UpdateCallback] = None,
    ):
        self._feed = feed or change_feed
        self._session_factory = session_factory
        self._sequencer = RequestSequencer()
        self._subscription: Optional[Subscription] = None
        self._listener: Optional[asyncio.Task] = None
        self.on_update = on_update
        self.data: Any = None
        self.error: Optional[str] = None
        self.loading = False

    async def fetch(self) -> Any:
        raise NotImplementedError

    @property
    def active(self) -> bool:
        return self._sequencer.active

    async def refresh(self) -> bool:
        """
        Fetch and apply fresh data.

        Database failures set the generic FAILURE_NOTICE, domain errors
        (unknown profile, invalid period) their own message.

        Returns:
            True if the result was applied, False if it was stale or failed
        """
        ticket = self._sequencer.next()
        self.loading = True
        try:
            result = await self.fetch()
        except (SQLAlchemyError, CommissionError) as e:
            if not self._sequencer.is_current(ticket):
                return False
            logger.warning(f"{type(self).__name__} refresh failed: {e}")
            self.error = FAILURE_NOTICE if isinstance(e, SQLAlchemyError) else str(e)
            self.loading = False
            await self._notify()
            return False

        if not self._sequencer.is_current(ticket):
            logger.debug(f"{type(self).__name__} discarded stale response #{ticket}")
            return False

        self.data = result
        self.error = None
        self.loading = False
        await self._notify()
        return True

    async def _notify(self) -> None:
        if self.on_update is not None:
            await self.on_update(self)

    async def start(self) -> None:
        """Load once, then refetch on every change notification."""
        self._subscription = self._feed.subscribe(self.table)
        self._listener = asyncio.create_task(self._listen(self._subscription))
        await self.refresh()

    async def _listen(self, subscription: Subscription) -> None:
        async for _event in subscription:
            if not self.active:
                break
            try:
                await self.refresh()
            except Exception:
                # Keep listening, the next notification retries
                logger.exception(f"{type(self).__name__} failed to handle a change notification")

    async def close(self) -> None:
        """Tear down: ignore in-flight responses and unsubscribe."""
        self._sequencer.close()
        if self._subscription is not None:
            self._subscription.close()
            self._subscription = None
        if self._listener is not None:
            self._listener.cancel()
            try:
                await self._listener
            except asyncio.CancelledError:
                pass
            self._listener = None


class SalesListView(LiveView):
    """Sales visible to a profile."""

    def __init__(self, viewer: Profile, **kwargs):
        super().__init__(**kwargs)
        self.viewer = viewer

    async def fetch(self) -> List:
        async with self._session_factory() as db:
            return await list_sales(db, self.viewer)


class ManagerCommissionPanel(LiveView):
    """Manager commission card that refetches on period change and on sales changes."""

    def __init__(self, manager_id: int, month: int, year: int, **kwargs):
        super().__init__(**kwargs)
        self.manager_id = manager_id
        self.month = month
        self.year = year

    async def set_period(self, month: int, year: int) -> bool:
        self.month = month
        self.year = year
        return await self.refresh()

    async def fetch(self):
        async with self._session_factory() as db:
            return await manager_commission_card(db, self.manager_id, self.month, self.year)
