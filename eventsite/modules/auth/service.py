import hashlib
import time
from typing import Any, Dict, Optional

from fastapi import HTTPException

from eventsite.config.site_config import STAFF_ROLES
from eventsite.database.gateway import BackendGateway
from eventsite.modules.auth.schemas import LoginRequest, TokenResponse

# In-memory cache for get_current_user to reduce Supabase auth calls (e.g. many parallel requests with same token)
_AUTH_USER_CACHE: Dict[str, tuple] = {}
_AUTH_CACHE_TTL_SEC = 60
_AUTH_CACHE_MAX_SIZE = 500


def clear_auth_cache() -> None:
    _AUTH_USER_CACHE.clear()


class AuthService:
    def __init__(self, gateway: BackendGateway):
        self.gateway = gateway

    async def login(self, login_data: LoginRequest) -> TokenResponse:
        """Authenticate user using Supabase Auth"""
        session = await self.gateway.sign_in_with_password(login_data.email, login_data.password)
        if not session:
            raise HTTPException(status_code=401, detail="Invalid email or password")
        return TokenResponse(
            access_token=session["access_token"],
            token_type="bearer",
            user_id=session["user_id"],
            email=session["email"],
        )

    async def get_current_user(self, token: Optional[str]) -> Optional[Dict[str, Any]]:
        """Identity for the token, or None. Uses short TTL cache to reduce auth API calls."""
        if not token:
            return None
        cache_key = hashlib.sha256(token.encode()).hexdigest()
        now = time.monotonic()
        if cache_key in _AUTH_USER_CACHE:
            user_data, expiry = _AUTH_USER_CACHE[cache_key]
            if now < expiry:
                return user_data
            del _AUTH_USER_CACHE[cache_key]
        user_data = await self.gateway.get_current_session(token)
        if user_data and len(_AUTH_USER_CACHE) < _AUTH_CACHE_MAX_SIZE:
            _AUTH_USER_CACHE[cache_key] = (user_data, now + _AUTH_CACHE_TTL_SEC)
        return user_data

    async def get_staff_role(self, user_id: str) -> Optional[str]:
        """Global staff role from user_roles, strongest first; None for regular users"""
        rows = await self.gateway.select_where(
            "user_roles",
            {"user_id": user_id},
            in_filters={"role": STAFF_ROLES},
            columns="role",
        )
        roles = {row["role"] for row in rows}
        for role in STAFF_ROLES:
            if role in roles:
                return role
        return None

    async def logout(self, token: str) -> bool:
        """Logout user using Supabase Auth"""
        _AUTH_USER_CACHE.pop(hashlib.sha256(token.encode()).hexdigest(), None)
        try:
            await self.gateway.sign_out()
            return True
        except Exception:
            return False
