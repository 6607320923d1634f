from fastapi import APIRouter, Depends, HTTPException, Query
from typing import Optional

from eventsite.core.context import ServiceContext, get_context
from eventsite.modules.navigation.schemas import NextPageResponse
from eventsite.modules.navigation.service import NavigationService, normalize_direction
from eventsite.modules.projects.service import ProjectService

router = APIRouter(prefix="/navigation", tags=["navigation"])


def get_navigation_service(context: ServiceContext = Depends(get_context)) -> NavigationService:
    return NavigationService(context.page_settings)


@router.get("/next", response_model=NextPageResponse)
async def next_page(
    current: str = Query(...),
    direction: str = Query("forward"),
    project_slug: Optional[str] = Query(None),
    context: ServiceContext = Depends(get_context),
    service: NavigationService = Depends(get_navigation_service)
):
    """Next or previous enabled page for swipe/arrow navigation"""
    try:
        normalized = normalize_direction(direction)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    project_id = None
    if project_slug:
        project = await ProjectService(context.gateway).require_by_slug(project_slug)
        project_id = project.id
    page = await service.next_enabled_page(current, normalized, project_slug, project_id)
    return NextPageResponse(current=current, direction=normalized, page=page)
