import logging
from typing import Any, Dict, List, Optional

from fastapi import HTTPException

from eventsite.database.gateway import BackendGateway
from eventsite.modules.editor.schemas import RegistrationField

logger = logging.getLogger(__name__)

# Columns the submitter cannot set
_RESERVED_COLUMNS = {"id", "project_id", "created_at"}

DUPLICATE_KEY_SEPARATOR = "|||"


def normalize_phone(phone: str) -> str:
    """Phone numbers are stored digits-only"""
    return phone.strip().replace("-", "")


def validate_submission(fields: List[RegistrationField], data: Dict[str, Any]) -> Dict[str, Any]:
    """Keep only configured form fields and enforce required ones"""
    missing = []
    cleaned: Dict[str, Any] = {}
    for field in fields:
        value = data.get(field.id)
        if isinstance(value, str):
            value = value.strip()
        if value in (None, ""):
            if field.required:
                missing.append(field.label)
            continue
        if field.type == "tel" and isinstance(value, str):
            value = normalize_phone(value)
        if field.options and value not in field.options:
            raise HTTPException(status_code=422, detail=f"Invalid value for {field.label}")
        cleaned[field.id] = value
    if missing:
        raise HTTPException(status_code=422, detail=f"Missing required fields: {', '.join(missing)}")
    return {k: v for k, v in cleaned.items() if k not in _RESERVED_COLUMNS}


class RegistrationService:
    def __init__(self, gateway: BackendGateway, write_gateway: Optional[BackendGateway] = None):
        self.gateway = gateway
        self.write_gateway = write_gateway or gateway

    async def list_registrations(self, project_id: str) -> List[Dict[str, Any]]:
        """Registrations newest first"""
        return await self.gateway.select_where(
            "registrations",
            {"project_id": project_id},
            order_by="created_at",
            desc=True,
        )

    async def submit_registration(
        self,
        project_id: str,
        fields: List[RegistrationField],
        data: Dict[str, Any],
    ) -> Dict[str, Any]:
        record = validate_submission(fields, data)
        rows = await self.write_gateway.insert("registrations", {**record, "project_id": project_id})
        if not rows:
            raise HTTPException(status_code=500, detail="Failed to save registration")
        logger.info(f"New registration {rows[0].get('id')} for project {project_id}")
        return rows[0]

    async def delete_registration(self, project_id: str, registration_id: str) -> bool:
        rows = await self.gateway.delete("registrations", {"id": registration_id, "project_id": project_id})
        if not rows:
            raise HTTPException(status_code=404, detail="Registration not found")
        return True

    async def find_registration(self, project_id: str, name: str, phone: str) -> Optional[Dict[str, Any]]:
        """Registration matching the submitter's name and phone, if any"""
        return await self.gateway.select_one("registrations", {
            "project_id": project_id,
            "name": name.strip(),
            "phone": normalize_phone(phone),
        })

    async def get_registration(self, project_id: str, registration_id: str) -> Optional[Dict[str, Any]]:
        return await self.gateway.select_one("registrations", {"id": registration_id, "project_id": project_id})

    async def delete_many(self, project_id: str, registration_ids: List[str]) -> int:
        """Delete each id in turn; ids not found in the project are skipped"""
        deleted = 0
        for registration_id in registration_ids:
            rows = await self.gateway.delete("registrations", {"id": registration_id, "project_id": project_id})
            deleted += len(rows)
        logger.info(f"Deleted {deleted} of {len(registration_ids)} registration(s) for project {project_id}")
        return deleted


def duplicate_key(registration: Dict[str, Any], field_ids: List[str]) -> str:
    parts = []
    for field_id in field_ids:
        value = registration.get(field_id)
        parts.append(str(value if value is not None else "").strip().lower())
    return DUPLICATE_KEY_SEPARATOR.join(parts)


def find_duplicate_groups(registrations: List[Dict[str, Any]], field_ids: List[str]) -> List[List[Dict[str, Any]]]:
    """Group non-cancelled registrations that agree on every given field.

    Values are compared trimmed and case-insensitively. Only groups with more
    than one registration are returned, in first-seen order.
    """
    if not field_ids:
        return []
    groups: Dict[str, List[Dict[str, Any]]] = {}
    for registration in registrations:
        if registration.get("status") == "cancelled":
            continue
        groups.setdefault(duplicate_key(registration, field_ids), []).append(registration)
    return [group for group in groups.values() if len(group) > 1]
