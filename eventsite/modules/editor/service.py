"""
Editor panel persistence.

Each panel is one ordered collection stored as a JSON array in a single
site_settings row. Every save replaces the whole collection, so two editors
saving the same panel concurrently overwrite each other (last write wins).
"""
import json
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

from pydantic import ValidationError

from eventsite.config.site_config import DEFAULT_REGISTRATION_FIELDS, PANELS, get_panel_config
from eventsite.core.exceptions import ParseFailureError
from eventsite.database.gateway import BackendGateway
from eventsite.modules.editor.collection import SortableCollection
from eventsite.modules.editor.schemas import PANEL_ITEM_TYPES, RegistrationField
from eventsite.modules.site_settings.service import SettingsService
from eventsite.modules.site_settings.utils import merge_with_defaults

logger = logging.getLogger(__name__)


def _parse_items(key: str, value: str) -> List[Any]:
    try:
        parsed = json.loads(value)
    except (TypeError, ValueError) as e:
        raise ParseFailureError(key, str(e)) from e
    if not isinstance(parsed, list):
        raise ParseFailureError(key, f"expected a JSON array, got {type(parsed).__name__}")
    return parsed


def decode_items(panel: str, value: Optional[str]) -> List[Dict[str, Any]]:
    """Stored JSON text -> validated item dicts; malformed values yield an empty list"""
    config = PANELS[panel]
    item_type = PANEL_ITEM_TYPES[panel]
    if value is None or value == "":
        return []
    try:
        raw_items = _parse_items(config["key"], value)
    except ParseFailureError as e:
        logger.error(f"{e.message}; using an empty collection")
        return []

    # Legacy rows without ids get a positional id so repeated reads agree
    stored = [item for item in raw_items if isinstance(item, dict)]
    collection = SortableCollection(
        item if item.get("id") else {**item, "id": f"{config['key']}_{index}"}
        for index, item in enumerate(stored)
    )
    items = []
    for item in collection.items:
        try:
            items.append(item_type.model_validate(item).model_dump(exclude_none=True))
        except ValidationError as e:
            logger.warning(f"Skipping invalid {panel} item {item.get('id')}: {e.error_count()} error(s)")
    return items


def encode_items(panel: str, items: List[Dict[str, Any]]) -> str:
    item_type = PANEL_ITEM_TYPES[panel]
    validated = [item_type.model_validate(item).model_dump(exclude_none=True) for item in items]
    return json.dumps(validated, ensure_ascii=False)


def decode_registration_fields(value: Optional[str]) -> List[RegistrationField]:
    return [RegistrationField(**item) for item in decode_items("form_fields", value)]


def encode_registration_fields(fields: List[RegistrationField]) -> str:
    return encode_items("form_fields", [f.model_dump(exclude_none=True) for f in fields])


class EditorService:
    def __init__(self, gateway: BackendGateway):
        self.settings_service = SettingsService(gateway)

    @staticmethod
    def panel_config(panel: str) -> Dict[str, Any]:
        config = get_panel_config(panel)
        if config is None:
            raise KeyError(panel)
        return config

    async def load(self, project_id: str, panel: str) -> SortableCollection:
        config = self.panel_config(panel)
        setting = await self.settings_service.get_setting(project_id, config["key"])
        if setting is None:
            if panel == "form_fields":
                return SortableCollection(DEFAULT_REGISTRATION_FIELDS)
            return SortableCollection()
        return SortableCollection(decode_items(panel, setting.value))

    async def save(self, project_id: str, panel: str, collection: SortableCollection) -> List[Dict[str, Any]]:
        config = self.panel_config(panel)
        value = encode_items(panel, collection.items)
        await self.settings_service.put_setting(project_id, config["key"], value, category=config["category"])
        logger.info(f"Saved {len(collection)} {panel} item(s) for project {project_id}")
        return decode_items(panel, value)

    async def apply(
        self,
        project_id: str,
        panel: str,
        operation: Callable[[SortableCollection], Any],
    ) -> Tuple[Any, List[Dict[str, Any]]]:
        """Load the panel, apply one in-memory operation, persist the whole collection"""
        collection = await self.load(project_id, panel)
        result = operation(collection)
        items = await self.save(project_id, panel, collection)
        return result, items

    def new_item_fields(self, panel: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        return merge_with_defaults(fields, self.panel_config(panel)["new_item"])
