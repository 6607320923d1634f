"""
Typed realtime change events and per-consumer subscriptions.

Supabase realtime delivers postgres change payloads to a callback. The gateway
normalizes each payload into a ChangeEvent and publishes it on a Subscription,
an asyncio queue that exactly one consumer drains and explicitly closes.
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Iterable, Optional

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

EVENT_TYPES = ("INSERT", "UPDATE", "DELETE")

_CLOSED = object()


class ChangeEvent(BaseModel):
    table: str
    event_type: str
    new: Dict[str, Any] = Field(default_factory=dict)
    old: Dict[str, Any] = Field(default_factory=dict)

    def value(self, column: str) -> Any:
        """Column value from the new row, falling back to the old row (DELETE events)"""
        if self.new.get(column) is not None:
            return self.new.get(column)
        return self.old.get(column)

    @classmethod
    def from_payload(cls, table: str, payload: Dict[str, Any]) -> "ChangeEvent":
        """Build an event from a realtime payload.

        Accepts the flat shape ({eventType, new, old}) as well as the nested
        realtime-py shape ({data: {type, record, old_record}}).
        """
        data = payload.get("data") if isinstance(payload.get("data"), dict) else payload
        event_type = data.get("eventType") or data.get("type") or ""
        new = data.get("new") if data.get("new") is not None else data.get("record")
        old = data.get("old") if data.get("old") is not None else data.get("old_record")
        return cls(
            table=data.get("table") or table,
            event_type=str(event_type).upper(),
            new=new or {},
            old=old or {},
        )


class Subscription:
    """One open change feed for one consumer.

    Events are queued by publish() and handed to the consumer by consume().
    close() stops consumption and releases the backend channel exactly once.
    """

    def __init__(
        self,
        table: str,
        event_types: Iterable[str] = EVENT_TYPES,
        closer: Optional[Callable[[], Awaitable[None]]] = None,
    ):
        self.table = table
        self.event_types = {e.upper() for e in event_types}
        self._closer = closer
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def publish(self, event: ChangeEvent) -> None:
        if self._closed:
            return
        if self.event_types and event.event_type not in self.event_types:
            return
        self._queue.put_nowait(event)

    async def consume(self, handler: Callable[[ChangeEvent], Awaitable[None]]) -> None:
        """Feed queued events to handler until the subscription is closed"""
        while True:
            event = await self._queue.get()
            try:
                if event is _CLOSED:
                    return
                await handler(event)
            except Exception as e:
                logger.error(f"Error handling {self.table} change event: {e}")
            finally:
                self._queue.task_done()

    async def drain(self) -> None:
        """Wait until every published event has been handled"""
        await self._queue.join()

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_CLOSED)
        if self._closer is not None:
            try:
                await self._closer()
            except Exception as e:
                logger.warning(f"Error releasing {self.table} realtime channel: {e}")
        logger.debug(f"Closed subscription on {self.table}")
