import logging
from typing import Dict, List, Optional

from fastapi import HTTPException

from eventsite.config.site_config import PROJECT_MANAGER_ROLES, STAFF_ROLES
from eventsite.database.gateway import BackendGateway
from eventsite.modules.users.schemas import UserResponse

logger = logging.getLogger(__name__)


def strongest_role(roles) -> Optional[str]:
    for role in STAFF_ROLES:
        if role in roles:
            return role
    return None


class UserService:
    def __init__(self, gateway: BackendGateway):
        self.gateway = gateway

    async def _roles_by_user(self, user_ids: List[str]) -> Dict[str, Optional[str]]:
        if not user_ids:
            return {}
        rows = await self.gateway.select_where(
            "user_roles",
            in_filters={"user_id": user_ids, "role": STAFF_ROLES},
            columns="user_id, role",
        )
        held: Dict[str, set] = {}
        for row in rows:
            held.setdefault(row["user_id"], set()).add(row["role"])
        return {user_id: strongest_role(roles) for user_id, roles in held.items()}

    def _to_response(self, profile: Dict, staff_role: Optional[str]) -> UserResponse:
        return UserResponse(
            user_id=profile["user_id"],
            email=profile.get("email"),
            name=profile.get("name"),
            approved=bool(profile.get("approved")),
            staff_role=staff_role,
            is_admin=staff_role in PROJECT_MANAGER_ROLES,
            created_at=profile.get("created_at"),
        )

    async def list_users(self, pending_only: bool = False) -> List[UserResponse]:
        """All profiles newest first with their staff role"""
        profiles = await self.gateway.select_where("profiles", order_by="created_at", desc=True)
        if pending_only:
            profiles = [p for p in profiles if not p.get("approved")]
        roles = await self._roles_by_user([p["user_id"] for p in profiles])
        return [self._to_response(p, roles.get(p["user_id"])) for p in profiles]

    async def get_user(self, user_id: str) -> UserResponse:
        profile = await self.gateway.select_one("profiles", {"user_id": user_id})
        if not profile:
            raise HTTPException(status_code=404, detail="User not found")
        roles = await self._roles_by_user([user_id])
        return self._to_response(profile, roles.get(user_id))

    async def approve_user(self, user_id: str) -> UserResponse:
        rows = await self.gateway.update("profiles", {"user_id": user_id}, {"approved": True})
        if not rows:
            raise HTTPException(status_code=404, detail="User not found")
        logger.info(f"Approved user {user_id}")
        return await self.get_user(user_id)

    async def reject_user(self, user_id: str) -> bool:
        """Remove a pending sign-up; approved users cannot be rejected"""
        user = await self.get_user(user_id)
        if user.approved:
            raise HTTPException(status_code=400, detail="User is already approved")
        await self.gateway.delete("profiles", {"user_id": user_id})
        logger.info(f"Rejected user {user_id}")
        return True

    async def set_staff_role(self, user_id: str, role: Optional[str], acting_user_id: str) -> UserResponse:
        """Grant role (replacing any other staff role) or revoke it when role is None"""
        if user_id == acting_user_id:
            raise HTTPException(status_code=400, detail="You cannot change your own staff role")
        await self.get_user(user_id)

        existing = await self.gateway.select_where(
            "user_roles",
            {"user_id": user_id},
            in_filters={"role": STAFF_ROLES},
            columns="role",
        )
        for row in existing:
            if row["role"] != role:
                await self.gateway.delete("user_roles", {"user_id": user_id, "role": row["role"]})
        if role is not None and role not in {row["role"] for row in existing}:
            await self.gateway.insert("user_roles", {"user_id": user_id, "role": role})

        logger.info(f"Staff role of user {user_id} set to {role or 'none'} by {acting_user_id}")
        return await self.get_user(user_id)
