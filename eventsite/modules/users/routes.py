from fastapi import APIRouter, Depends
from typing import Dict, List

from eventsite.config.site_config import PROJECT_MANAGER_ROLES, STAFF_ADMIN_ROLES
from eventsite.core.context import get_gateway
from eventsite.core.dependencies import require_staff_role
from eventsite.database.gateway import BackendGateway
from eventsite.modules.users.schemas import StaffRoleUpdate, UserResponse
from eventsite.modules.users.service import UserService

router = APIRouter(prefix="/users", tags=["users"])


def get_user_service(gateway: BackendGateway = Depends(get_gateway)) -> UserService:
    return UserService(gateway)


@router.get("", response_model=List[UserResponse])
async def list_users(
    pending: bool = False,
    user_data: Dict = Depends(require_staff_role(PROJECT_MANAGER_ROLES)),
    service: UserService = Depends(get_user_service)
):
    """List users newest first; pending=true lists sign-ups awaiting approval"""
    return await service.list_users(pending_only=pending)


@router.post("/{user_id}/approve", response_model=UserResponse)
async def approve_user(
    user_id: str,
    user_data: Dict = Depends(require_staff_role(PROJECT_MANAGER_ROLES)),
    service: UserService = Depends(get_user_service)
):
    return await service.approve_user(user_id)


@router.post("/{user_id}/reject", status_code=204)
async def reject_user(
    user_id: str,
    user_data: Dict = Depends(require_staff_role(PROJECT_MANAGER_ROLES)),
    service: UserService = Depends(get_user_service)
):
    """Discard a pending sign-up"""
    await service.reject_user(user_id)
    return None


@router.put("/{user_id}/staff-role", response_model=UserResponse)
async def set_staff_role(
    user_id: str,
    body: StaffRoleUpdate,
    user_data: Dict = Depends(require_staff_role(STAFF_ADMIN_ROLES)),
    service: UserService = Depends(get_user_service)
):
    """Grant or revoke a global staff role"""
    return await service.set_staff_role(user_id, body.role, acting_user_id=user_data["id"])
