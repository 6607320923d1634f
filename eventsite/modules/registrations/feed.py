"""
Realtime registration list.

Unlike the settings subscriber, change events are applied to the local list
directly: the event payload is trusted, no re-fetch happens.
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from eventsite.core.notifications import Notifier
from eventsite.core.realtime import ChangeEvent, Subscription
from eventsite.database.gateway import BackendGateway
from eventsite.modules.registrations.service import RegistrationService

logger = logging.getLogger(__name__)

UpdateListener = Callable[[List[Dict[str, Any]]], Awaitable[None]]


class RegistrationFeed:
    def __init__(
        self,
        gateway: BackendGateway,
        project_id: str,
        notifier: Optional[Notifier] = None,
        on_update: Optional[UpdateListener] = None,
    ):
        self.gateway = gateway
        self.service = RegistrationService(gateway)
        self.project_id = project_id
        self.notifier = notifier or Notifier()
        self.on_update = on_update
        self.registrations: List[Dict[str, Any]] = []
        self.loading = True
        self._subscription: Optional[Subscription] = None
        self._consumer: Optional[asyncio.Task] = None
        self._closed = False

    async def start(self) -> None:
        if self._closed:
            raise RuntimeError("Feed is closed")
        if self._subscription is not None:
            raise RuntimeError("Feed already started")
        try:
            self.registrations = await self.service.list_registrations(self.project_id)
        finally:
            self.loading = False
        self._subscription = await self.gateway.subscribe_changes(
            "registrations", ("INSERT", "UPDATE", "DELETE")
        )
        self._consumer = asyncio.ensure_future(self._subscription.consume(self._handle_event))

    def _index_of(self, registration_id: Any) -> Optional[int]:
        for index, registration in enumerate(self.registrations):
            if registration.get("id") == registration_id:
                return index
        return None

    async def _handle_event(self, event: ChangeEvent) -> None:
        if self._closed:
            return
        project_id = event.value("project_id")
        if project_id is not None and project_id != self.project_id:
            return

        if event.event_type == "INSERT":
            self._apply_insert(event.new)
        elif event.event_type == "UPDATE":
            index = self._index_of(event.new.get("id"))
            if index is None:
                logger.debug(f"UPDATE for unknown registration {event.new.get('id')}; ignored")
                return
            self.registrations[index] = event.new
        elif event.event_type == "DELETE":
            index = self._index_of(event.old.get("id"))
            if index is None:
                return
            self.registrations.pop(index)
        else:
            return

        if self.on_update is not None:
            await self.on_update(list(self.registrations))

    def _apply_insert(self, record: Dict[str, Any]) -> None:
        index = self._index_of(record.get("id"))
        if index is not None:
            # Duplicate delivery; keep a single entry
            self.registrations[index] = record
            return
        self.registrations.insert(0, record)
        name = record.get("name") or "Unknown"
        self.notifier.notify("New registration", f"{name} has registered")

    async def wait_idle(self) -> None:
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
