"""
Service context: the explicitly owned process-wide services.

Created once at application startup and stored on app.state; consumers receive
it through the get_context dependency. Torn down at shutdown.
"""
import logging
from typing import Optional

from fastapi.requests import HTTPConnection

from eventsite.database.gateway import BackendGateway, SupabaseGateway
from eventsite.database.supabase_client import SupabaseClient
from eventsite.modules.access.service import AccessSessionRegistry
from eventsite.modules.site_settings.cache import PageSettingsCache

logger = logging.getLogger(__name__)


class ServiceContext:
    def __init__(self, gateway: BackendGateway, service_gateway: Optional[BackendGateway] = None):
        self.gateway = gateway
        # Writes that must bypass RLS (public registration submissions)
        self.service_gateway = service_gateway or gateway
        self.page_settings = PageSettingsCache(gateway)
        self.access_sessions = AccessSessionRegistry(gateway)

    async def close(self) -> None:
        await self.page_settings.close()
        self.access_sessions.close_all()
        logger.info("Service context closed")


async def create_context() -> ServiceContext:
    client = await SupabaseClient.get_client()
    service_client = await SupabaseClient.get_service_client()
    return ServiceContext(SupabaseGateway(client), SupabaseGateway(service_client))


def get_context(connection: HTTPConnection) -> ServiceContext:
    return connection.app.state.context


def get_gateway(connection: HTTPConnection) -> BackendGateway:
    return get_context(connection).gateway
