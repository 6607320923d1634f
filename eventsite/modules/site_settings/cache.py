"""
Process-wide page feature-flag cache.

Owned by the ServiceContext created at application startup. The first caller
for a key starts the only fetch; callers arriving while it runs await the same
task. Resolved values stay cached until the process exits.
"""
import asyncio
import logging
from typing import Dict, Optional

from eventsite.database.gateway import BackendGateway
from eventsite.modules.site_settings.schemas import PageSettings
from eventsite.modules.site_settings.service import SettingsService

logger = logging.getLogger(__name__)


class PageSettingsCache:
    def __init__(self, gateway: BackendGateway):
        self.settings_service = SettingsService(gateway)
        self._values: Dict[Optional[str], PageSettings] = {}
        self._pending: Dict[Optional[str], asyncio.Task] = {}

    def peek(self, project_id: Optional[str] = None) -> Optional[PageSettings]:
        """Cached value without awaiting, or None when the cache is cold"""
        return self._values.get(project_id)

    async def get(self, project_id: Optional[str] = None) -> PageSettings:
        cached = self._values.get(project_id)
        if cached is not None:
            return cached
        task = self._pending.get(project_id)
        if task is None:
            task = asyncio.ensure_future(self._fetch(project_id))
            self._pending[project_id] = task
        # A cancelled caller must not cancel the fetch other callers share
        return await asyncio.shield(task)

    async def _fetch(self, project_id: Optional[str]) -> PageSettings:
        try:
            try:
                value = await self.settings_service.load_page_settings(project_id)
            except Exception as e:
                # Defaults are cached too; there is no invalidation or retry path
                logger.error(f"Error loading page settings for project {project_id}: {e}")
                value = PageSettings()
            self._values[project_id] = value
            return value
        finally:
            self._pending.pop(project_id, None)

    async def close(self) -> None:
        pending = list(self._pending.values())
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._pending.clear()
        self._values.clear()
