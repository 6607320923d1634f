from fastapi import APIRouter, Depends, HTTPException
from typing import Dict, Optional

from eventsite.core.dependencies import get_auth_service, get_current_token, get_current_user_id
from eventsite.modules.auth.schemas import CurrentUserResponse, LoginRequest, TokenResponse
from eventsite.modules.auth.service import AuthService

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=TokenResponse)
async def login(
    login_data: LoginRequest,
    service: AuthService = Depends(get_auth_service)
):
    """Login and get access token"""
    return await service.login(login_data)


@router.post("/logout", status_code=200)
async def logout(
    token: Optional[str] = Depends(get_current_token),
    service: AuthService = Depends(get_auth_service)
):
    """Logout and invalidate token"""
    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")
    await service.logout(token)
    return {"message": "Logged out successfully"}


@router.get("/me", response_model=CurrentUserResponse)
async def get_current_user(
    current_user: Dict = Depends(get_current_user_id),
    service: AuthService = Depends(get_auth_service)
):
    """Get current authenticated user and their global staff role (for frontend UI)."""
    staff_role = await service.get_staff_role(current_user["id"])
    return CurrentUserResponse(id=current_user["id"], email=current_user.get("email"), staff_role=staff_role)
