import logging
from typing import Dict, Iterable, List, Optional

from eventsite.config.site_config import PAGE_FLAG_KEYS
from eventsite.database.gateway import BackendGateway
from eventsite.modules.site_settings.schemas import PageSettings, SiteSetting
from eventsite.modules.site_settings.utils import category_from_key, flag_value

logger = logging.getLogger(__name__)


class SettingsService:
    def __init__(self, gateway: BackendGateway):
        self.gateway = gateway

    async def list_by_categories(self, project_id: str, categories: Iterable[str]) -> List[SiteSetting]:
        """All settings of the project in the given categories"""
        category_list = list(categories)
        if not category_list:
            return []
        rows = await self.gateway.select_where(
            "site_settings",
            {"project_id": project_id},
            in_filters={"category": category_list},
        )
        return [SiteSetting(**row) for row in rows]

    async def get_setting(self, project_id: str, key: str) -> Optional[SiteSetting]:
        row = await self.gateway.select_one(
            "site_settings",
            {"project_id": project_id, "category": category_from_key(key), "key": key},
        )
        return SiteSetting(**row) if row else None

    async def put_setting(self, project_id: str, key: str, value: str, category: Optional[str] = None) -> SiteSetting:
        """Replace one setting value (last write wins)"""
        category = category or category_from_key(key)
        await self.gateway.delete("site_settings", {"project_id": project_id, "key": key})
        rows = await self.gateway.insert("site_settings", {
            "project_id": project_id,
            "category": category,
            "key": key,
            "value": value,
        })
        logger.debug(f"Saved setting {key} for project {project_id}")
        if rows:
            return SiteSetting(**rows[0])
        return SiteSetting(project_id=project_id, category=category, key=key, value=value)

    async def save_settings(self, project_id: str, values: Dict[str, str]) -> List[SiteSetting]:
        saved = []
        for key, value in values.items():
            saved.append(await self.put_setting(project_id, key, value))
        logger.info(f"Saved {len(saved)} setting(s) for project {project_id}")
        return saved

    async def load_page_settings(self, project_id: Optional[str] = None) -> PageSettings:
        """Page feature flags; a missing row leaves its page enabled"""
        filters = {"project_id": project_id} if project_id else None
        rows = await self.gateway.select_where(
            "site_settings",
            filters,
            in_filters={"key": list(PAGE_FLAG_KEYS.values())},
        )
        values = {row["key"]: row.get("value") for row in rows}
        flags = {}
        for page, key in PAGE_FLAG_KEYS.items():
            flags[page] = flag_value(values[key]) if key in values else True
        return PageSettings(**flags)

    async def is_page_enabled(self, project_id: str, page: str) -> bool:
        """Read one page flag straight from the table, bypassing any cache"""
        key = PAGE_FLAG_KEYS.get(page)
        if key is None:
            return True
        setting = await self.get_setting(project_id, key)
        return flag_value(setting.value) if setting else True
