import logging
from typing import List

from fastapi import HTTPException

from eventsite.database.gateway import BackendGateway
from eventsite.modules.members.schemas import MemberInvite, MemberProfile, MemberResponse

logger = logging.getLogger(__name__)


class MemberService:
    def __init__(self, gateway: BackendGateway):
        self.gateway = gateway

    async def list_members(self, project_id: str) -> List[MemberResponse]:
        """List project members newest first, joined with their profiles"""
        members = await self.gateway.select_where(
            "project_members",
            {"project_id": project_id},
            order_by="created_at",
            desc=True,
        )
        if not members:
            return []

        user_ids = [m["user_id"] for m in members]
        profiles = await self.gateway.select_where(
            "profiles",
            in_filters={"user_id": user_ids},
            columns="user_id, name, email, organization, position",
        )
        profiles_by_user = {p["user_id"]: p for p in profiles}

        result = []
        for member in members:
            profile = profiles_by_user.get(member["user_id"])
            profile_data = {k: v for k, v in (profile or {}).items() if k != "user_id" and v is not None}
            result.append(MemberResponse(**member, profile=MemberProfile(**profile_data)))
        return result

    async def invite_member(self, project_id: str, invite: MemberInvite) -> MemberResponse:
        """Add an existing user (found by e-mail) to the project"""
        profile = await self.gateway.select_one("profiles", {"email": invite.email}, columns="user_id")
        if not profile:
            raise HTTPException(status_code=404, detail="No user with this email")

        existing = await self.gateway.select_one(
            "project_members",
            {"project_id": project_id, "user_id": profile["user_id"]},
            columns="id",
        )
        if existing:
            raise HTTPException(status_code=400, detail="User is already a project member")

        rows = await self.gateway.insert("project_members", {
            "project_id": project_id,
            "user_id": profile["user_id"],
            "role": invite.role,
        })
        if not rows:
            raise HTTPException(status_code=500, detail="Failed to add member")
        logger.info(f"Added {invite.email} to project {project_id} as {invite.role}")
        return MemberResponse(**rows[0])

    async def update_member_role(self, project_id: str, member_id: str, role: str) -> MemberResponse:
        rows = await self.gateway.update(
            "project_members",
            {"id": member_id, "project_id": project_id},
            {"role": role},
        )
        if not rows:
            raise HTTPException(status_code=404, detail="Member not found")
        return MemberResponse(**rows[0])

    async def remove_member(self, project_id: str, member_id: str) -> bool:
        rows = await self.gateway.delete("project_members", {"id": member_id, "project_id": project_id})
        if not rows:
            raise HTTPException(status_code=404, detail="Member not found")
        return True
