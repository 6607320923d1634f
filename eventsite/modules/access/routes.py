from fastapi import APIRouter, Depends, Query
from fastapi.requests import HTTPConnection
from typing import Any, Dict, Optional

from eventsite.core.context import ServiceContext, get_context
from eventsite.core.dependencies import get_optional_user, resolve_project_access
from eventsite.modules.access.schemas import ProjectAccess
from eventsite.modules.projects.service import ProjectService

router = APIRouter(prefix="/projects", tags=["access"])


@router.get("/{project_slug}/access", response_model=ProjectAccess)
async def get_access(
    project_slug: str,
    connection: HTTPConnection,
    preview: bool = Query(False),
    user_data: Optional[Dict[str, Any]] = Depends(get_optional_user),
    context: ServiceContext = Depends(get_context)
):
    """Resolve the caller's role and permissions in the project.

    Failures are reported in the body (error, redirect_to, notifications);
    each failing slug is notified and redirected only once per session.
    """
    if preview:
        project = await ProjectService(context.gateway).require_by_slug(project_slug)
        return ProjectAccess.preview_access(project.id)
    return await resolve_project_access(connection, project_slug, user_data, context)
