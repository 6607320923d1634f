"""
Backend gateway: the fixed query, mutation, realtime and session surface the
services use. SupabaseGateway implements it on top of supabase.AsyncClient.
"""
import logging
import uuid
from typing import Any, Dict, Iterable, List, Optional

from supabase import AsyncClient

from eventsite.core.exceptions import TransientFetchError
from eventsite.core.realtime import ChangeEvent, Subscription, EVENT_TYPES

logger = logging.getLogger(__name__)


class BackendGateway:
    """Abstract data/auth/realtime service"""

    async def select_where(
        self,
        table: str,
        filters: Optional[Dict[str, Any]] = None,
        in_filters: Optional[Dict[str, Iterable[Any]]] = None,
        order_by: Optional[str] = None,
        desc: bool = False,
        columns: str = "*",
    ) -> List[Dict[str, Any]]:
        raise NotImplementedError

    async def select_one(
        self,
        table: str,
        filters: Dict[str, Any],
        columns: str = "*",
        single: bool = False,
    ) -> Optional[Dict[str, Any]]:
        """Single row or None. single=True fails on zero or many matches; default is maybe-single."""
        raise NotImplementedError

    async def insert(self, table: str, payload: Any) -> List[Dict[str, Any]]:
        raise NotImplementedError

    async def update(self, table: str, filters: Dict[str, Any], payload: Dict[str, Any]) -> List[Dict[str, Any]]:
        raise NotImplementedError

    async def delete(self, table: str, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        raise NotImplementedError

    async def subscribe_changes(self, table: str, event_types: Iterable[str] = EVENT_TYPES) -> Subscription:
        raise NotImplementedError

    async def get_current_session(self, token: Optional[str]) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    async def sign_in_with_password(self, email: str, password: str) -> Optional[Dict[str, Any]]:
        """{access_token, user_id, email} or None on invalid credentials"""
        raise NotImplementedError

    async def sign_out(self) -> None:
        raise NotImplementedError


class SupabaseGateway(BackendGateway):
    def __init__(self, supabase: AsyncClient):
        self.supabase = supabase

    def _query(self, table: str, columns: str, filters: Optional[Dict[str, Any]], in_filters=None):
        query = self.supabase.table(table).select(columns)
        for column, value in (filters or {}).items():
            query = query.eq(column, value)
        for column, values in (in_filters or {}).items():
            query = query.in_(column, list(values))
        return query

    async def select_where(self, table, filters=None, in_filters=None, order_by=None, desc=False, columns="*"):
        try:
            query = self._query(table, columns, filters, in_filters)
            if order_by:
                query = query.order(order_by, desc=desc)
            result = await query.execute()
            return result.data or []
        except Exception as e:
            logger.error(f"Error selecting from {table}: {e}")
            raise TransientFetchError(str(e)) from e

    async def select_one(self, table, filters, columns="*", single=False):
        try:
            query = self._query(table, columns, filters)
            query = query.single() if single else query.maybe_single()
            result = await query.execute()
            # postgrest returns no response at all for an empty maybe_single
            if result is None:
                return None
            return result.data
        except Exception as e:
            logger.error(f"Error selecting one row from {table}: {e}")
            raise TransientFetchError(str(e)) from e

    async def insert(self, table, payload):
        try:
            result = await self.supabase.table(table).insert(payload).execute()
            return result.data or []
        except Exception as e:
            logger.error(f"Error inserting into {table}: {e}")
            raise TransientFetchError(str(e)) from e

    async def update(self, table, filters, payload):
        try:
            query = self.supabase.table(table).update(payload)
            for column, value in filters.items():
                query = query.eq(column, value)
            result = await query.execute()
            return result.data or []
        except Exception as e:
            logger.error(f"Error updating {table}: {e}")
            raise TransientFetchError(str(e)) from e

    async def delete(self, table, filters):
        try:
            query = self.supabase.table(table).delete()
            for column, value in filters.items():
                query = query.eq(column, value)
            result = await query.execute()
            return result.data or []
        except Exception as e:
            logger.error(f"Error deleting from {table}: {e}")
            raise TransientFetchError(str(e)) from e

    async def subscribe_changes(self, table, event_types=EVENT_TYPES):
        """Open one realtime channel on table; the table-level feed is not filtered further server-side"""
        channel = self.supabase.channel(f"{table}-changes-{uuid.uuid4().hex[:8]}")

        async def remove_channel():
            await self.supabase.remove_channel(channel)

        subscription = Subscription(table, event_types, closer=remove_channel)

        def on_change(payload: Dict[str, Any]) -> None:
            subscription.publish(ChangeEvent.from_payload(table, payload))

        channel.on_postgres_changes("*", callback=on_change, table=table, schema="public")
        try:
            await channel.subscribe()
        except Exception as e:
            logger.error(f"Error subscribing to {table} changes: {e}")
            raise TransientFetchError(str(e)) from e
        logger.debug(f"Subscribed to {table} changes ({', '.join(sorted(subscription.event_types))})")
        return subscription

    async def get_current_session(self, token):
        if not token:
            return None
        try:
            user_response = await self.supabase.auth.get_user(jwt=token)
        except Exception as e:
            logger.debug(f"Token rejected by Supabase Auth: {e}")
            return None
        if not user_response or not user_response.user:
            return None
        user = user_response.user
        return {
            "id": user.id,
            "email": user.email,
            "user_metadata": user.user_metadata or {},
            "app_metadata": user.app_metadata or {},
        }

    async def sign_in_with_password(self, email, password):
        try:
            auth_response = await self.supabase.auth.sign_in_with_password({
                "email": email,
                "password": password
            })
        except Exception as e:
            error_message = str(e)
            if "invalid" in error_message.lower() or "credentials" in error_message.lower():
                return None
            raise TransientFetchError(f"Login failed: {error_message}") from e
        if not auth_response.user or not auth_response.session:
            return None
        return {
            "access_token": auth_response.session.access_token,
            "user_id": auth_response.user.id,
            "email": auth_response.user.email or email,
        }

    async def sign_out(self):
        # Supabase Auth tokens are stateless JWTs, so logout is mainly client-side
        await self.supabase.auth.sign_out()
