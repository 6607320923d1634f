from fastapi import APIRouter, Depends
from typing import List

from eventsite.core.context import get_gateway
from eventsite.core.dependencies import require_project_permission
from eventsite.database.gateway import BackendGateway
from eventsite.modules.access.schemas import ProjectAccess
from eventsite.modules.members.schemas import MemberInvite, MemberResponse, MemberRoleUpdate
from eventsite.modules.members.service import MemberService

router = APIRouter(prefix="/projects/{project_slug}/members", tags=["members"])


def get_member_service(gateway: BackendGateway = Depends(get_gateway)) -> MemberService:
    return MemberService(gateway)


@router.get("", response_model=List[MemberResponse])
async def list_members(
    access: ProjectAccess = Depends(require_project_permission()),
    service: MemberService = Depends(get_member_service)
):
    """List project members with their profiles"""
    return await service.list_members(access.project_id)


@router.post("", response_model=MemberResponse, status_code=201)
async def invite_member(
    invite: MemberInvite,
    access: ProjectAccess = Depends(require_project_permission("can_manage_members")),
    service: MemberService = Depends(get_member_service)
):
    """Add a user to the project by e-mail (requires member management permission)"""
    return await service.invite_member(access.project_id, invite)


@router.put("/{member_id}", response_model=MemberResponse)
async def update_member_role(
    member_id: str,
    update: MemberRoleUpdate,
    access: ProjectAccess = Depends(require_project_permission("can_manage_members")),
    service: MemberService = Depends(get_member_service)
):
    """Change a member's role (requires member management permission)"""
    return await service.update_member_role(access.project_id, member_id, update.role)


@router.delete("/{member_id}", status_code=204)
async def remove_member(
    member_id: str,
    access: ProjectAccess = Depends(require_project_permission("can_manage_members")),
    service: MemberService = Depends(get_member_service)
):
    """Remove a member from the project (requires member management permission)"""
    await service.remove_member(access.project_id, member_id)
    return None
