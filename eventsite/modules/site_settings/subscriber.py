import asyncio
import logging
from typing import Awaitable, Callable, Iterable, List, Optional

from eventsite.core.realtime import ChangeEvent, Subscription
from eventsite.database.gateway import BackendGateway
from eventsite.modules.site_settings.schemas import SiteSetting
from eventsite.modules.site_settings.service import SettingsService

logger = logging.getLogger(__name__)

UpdateListener = Callable[[List[SiteSetting]], Awaitable[None]]


class CategorySettingsSubscriber:
    """Keeps the settings of a category set in sync with site_settings.

    The change feed covers the whole table, so events are filtered here by the
    category of the new (or, for deletes, old) row. A matching event triggers a
    full re-fetch of the category set rather than patching rows in place.
    """

    def __init__(
        self,
        gateway: BackendGateway,
        categories: Iterable[str],
        project_id: str,
        on_update: Optional[UpdateListener] = None,
    ):
        self.gateway = gateway
        self.service = SettingsService(gateway)
        self.categories = set(categories)
        self.project_id = project_id
        self.on_update = on_update
        self.settings: Optional[List[SiteSetting]] = None
        self.loading = True
        self.reload_count = 0
        self._subscription: Optional[Subscription] = None
        self._consumer: Optional[asyncio.Task] = None
        self._closed = False

    async def start(self) -> None:
        if self._closed:
            raise RuntimeError("Subscriber is closed")
        if self._subscription is not None:
            raise RuntimeError("Subscriber already started")
        await self.reload()
        self._subscription = await self.gateway.subscribe_changes("site_settings")
        self._consumer = asyncio.ensure_future(self._subscription.consume(self._handle_event))

    async def reload(self) -> None:
        try:
            settings = await self.service.list_by_categories(self.project_id, self.categories)
        except Exception as e:
            logger.error(f"Error loading category settings {sorted(self.categories)}: {e}")
            return
        finally:
            self.loading = False
        if self._closed:
            return
        self.settings = settings
        self.reload_count += 1
        if self.on_update is not None:
            await self.on_update(settings)

    def matches(self, event: ChangeEvent) -> bool:
        project_id = event.value("project_id")
        if project_id is not None and project_id != self.project_id:
            return False
        category = event.value("category")
        return category is not None and category in self.categories

    async def _handle_event(self, event: ChangeEvent) -> None:
        if self._closed or not self.matches(event):
            return
        logger.debug(f"site_settings {event.event_type} for {event.value('key')}; reloading")
        await self.reload()

    async def wait_idle(self) -> None:
        """Wait until all received change events have been handled"""
        if self._subscription is not None:
            await self._subscription.drain()

    async def close(self) -> None:
        self._closed = True
        if self._subscription is not None:
            await self._subscription.close()
        if self._consumer is not None:
            try:
                await asyncio.wait_for(self._consumer, timeout=1)
            except asyncio.TimeoutError:
                self._consumer.cancel()
        self._subscription = None
        self._consumer = None
