"""
Core dependencies for route protection and project access checking
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import Depends, HTTPException, Query, Security, status
from fastapi.requests import HTTPConnection
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from eventsite.core.context import ServiceContext, get_context, get_gateway
from eventsite.core.exceptions import NotAuthorizedError, ProjectNotFoundError, TransientFetchError
from eventsite.database.gateway import BackendGateway
from eventsite.modules.access.schemas import ProjectAccess
from eventsite.modules.access.service import AccessSession
from eventsite.modules.auth.service import AuthService
from eventsite.modules.projects.service import ProjectService

logger = logging.getLogger(__name__)

# Optional so unauthenticated callers reach access resolution (role None) and preview routes
security = HTTPBearer(auto_error=False)

SESSION_HEADER = "x-session-id"


def get_auth_service(gateway: BackendGateway = Depends(get_gateway)) -> AuthService:
    return AuthService(gateway)


def get_current_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security)
) -> Optional[str]:
    """Extract JWT token from Authorization header, if any"""
    return credentials.credentials if credentials else None


async def get_optional_user(
    token: Optional[str] = Depends(get_current_token),
    auth_service: AuthService = Depends(get_auth_service)
) -> Optional[Dict[str, Any]]:
    """Current identity, or None when no valid token was sent"""
    return await auth_service.get_current_user(token)


async def get_current_user_id(
    user_data: Optional[Dict[str, Any]] = Depends(get_optional_user)
) -> Dict[str, Any]:
    """Current identity; 401 when unauthenticated"""
    if not user_data:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token"
        )
    return user_data


def require_staff_role(allowed_roles: List[str]):
    """Factory function to create a global staff role check dependency"""
    async def check_staff_role(
        user_data: Dict = Depends(get_current_user_id),
        auth_service: AuthService = Depends(get_auth_service)
    ) -> Dict:
        staff_role = await auth_service.get_staff_role(user_data["id"])
        if staff_role not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Insufficient permissions. Required role: {' or '.join(allowed_roles)}"
            )
        return {**user_data, "staff_role": staff_role}
    return check_staff_role


def get_session_key(connection: HTTPConnection, user_data: Optional[Dict[str, Any]]) -> str:
    """Per-session key for access state: explicit session header, else the user id"""
    session_id = connection.headers.get(SESSION_HEADER)
    if session_id:
        return session_id
    if user_data:
        return f"user:{user_data['id']}"
    return "anonymous"


async def resolve_project_access(
    connection: HTTPConnection,
    project_slug: str,
    user_data: Optional[Dict[str, Any]],
    context: ServiceContext,
) -> ProjectAccess:
    session = context.access_sessions.get(get_session_key(connection, user_data))
    access = await session.resolve_access(project_slug, user_data)
    if access is None:
        # Session moved to another slug mid-flight; this request still needs an answer
        access = await AccessSession(context.gateway).resolve_access(project_slug, user_data)
    return access


def _raise_for_access(access: ProjectAccess, user_data: Optional[Dict[str, Any]], project_slug: str) -> None:
    if not user_data:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required"
        )
    if access.error == "not_found":
        raise ProjectNotFoundError(project_slug)
    if access.error == "not_authorized":
        raise NotAuthorizedError("You are not a member of this project")
    if access.error:
        raise TransientFetchError("Access check failed")


async def get_project_access(
    project_slug: str,
    connection: HTTPConnection,
    preview: bool = Query(False),
    user_data: Optional[Dict[str, Any]] = Depends(get_optional_user),
    context: ServiceContext = Depends(get_context)
) -> ProjectAccess:
    """Access for read-only routes. preview=true skips membership checks entirely."""
    if preview:
        project = await ProjectService(context.gateway).require_by_slug(project_slug)
        return ProjectAccess.preview_access(project.id)
    access = await resolve_project_access(connection, project_slug, user_data, context)
    _raise_for_access(access, user_data, project_slug)
    return access


def require_project_permission(permission: Optional[str] = None):
    """Factory function to create a project permission check dependency.

    permission=None admits any project member.
    Never honours preview mode: mutating routes always resolve membership.
    """
    async def check_project_permission(
        project_slug: str,
        connection: HTTPConnection,
        user_data: Optional[Dict[str, Any]] = Depends(get_optional_user),
        context: ServiceContext = Depends(get_context)
    ) -> ProjectAccess:
        access = await resolve_project_access(connection, project_slug, user_data, context)
        _raise_for_access(access, user_data, project_slug)
        if permission is not None and not getattr(access, permission, False):
            raise NotAuthorizedError(f"Insufficient permissions. Required: {permission}")
        return access
    return check_project_permission
