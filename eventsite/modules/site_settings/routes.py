import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, WebSocket, WebSocketDisconnect

from eventsite.core.context import ServiceContext, get_context, get_gateway
from eventsite.core.dependencies import require_project_permission, resolve_project_access
from eventsite.database.gateway import BackendGateway
from eventsite.modules.access.schemas import ProjectAccess
from eventsite.modules.auth.service import AuthService
from eventsite.modules.projects.service import ProjectService
from eventsite.modules.site_settings.schemas import PageSettings, SettingsUpdate, SiteSetting
from eventsite.modules.site_settings.service import SettingsService
from eventsite.modules.site_settings.subscriber import CategorySettingsSubscriber

logger = logging.getLogger(__name__)

router = APIRouter(tags=["settings"])


def get_settings_service(gateway: BackendGateway = Depends(get_gateway)) -> SettingsService:
    return SettingsService(gateway)


def _split_categories(categories: str) -> List[str]:
    return [c.strip() for c in categories.split(",") if c.strip()]


@router.get("/projects/{project_slug}/settings", response_model=List[SiteSetting])
async def list_settings(
    project_slug: str,
    category: str = Query(..., description="Comma-separated categories"),
    gateway: BackendGateway = Depends(get_gateway),
    service: SettingsService = Depends(get_settings_service)
):
    """Public site content settings of the given categories"""
    project = await ProjectService(gateway).require_by_slug(project_slug)
    return await service.list_by_categories(project.id, _split_categories(category))


@router.put("/projects/{project_slug}/settings", response_model=List[SiteSetting])
async def save_settings(
    update: SettingsUpdate,
    access: ProjectAccess = Depends(require_project_permission("can_manage_settings")),
    service: SettingsService = Depends(get_settings_service)
):
    """Save key/value settings; each key's category follows its prefix (requires settings permission)"""
    return await service.save_settings(access.project_id, update.values)


@router.get("/projects/{project_slug}/page-settings", response_model=PageSettings)
async def get_project_page_settings(
    project_slug: str,
    context: ServiceContext = Depends(get_context)
):
    """Which optional pages of the project are enabled"""
    project = await ProjectService(context.gateway).require_by_slug(project_slug)
    return await context.page_settings.get(project.id)


@router.get("/page-settings", response_model=PageSettings)
async def get_page_settings(context: ServiceContext = Depends(get_context)):
    """Site-wide page flags, not scoped to a project"""
    return await context.page_settings.get()


@router.websocket("/projects/{project_slug}/settings/stream")
async def stream_settings(
    websocket: WebSocket,
    project_slug: str,
    categories: str = Query(...),
    token: Optional[str] = Query(None)
):
    """Push the category settings on connect and after every relevant change"""
    context = get_context(websocket)
    user_data = await AuthService(context.gateway).get_current_user(token)
    try:
        access = await resolve_project_access(websocket, project_slug, user_data, context)
    except HTTPException:
        await websocket.close(code=1008)
        return
    if not user_data or access.error or not access.can_edit:
        await websocket.close(code=1008)
        return

    await websocket.accept()

    async def push(settings: List[SiteSetting]) -> None:
        payload: Dict[str, Any] = {"settings": [s.model_dump() for s in settings]}
        await websocket.send_json(payload)

    subscriber = CategorySettingsSubscriber(
        context.gateway, _split_categories(categories), access.project_id, on_update=push
    )
    try:
        await subscriber.start()
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.debug(f"Settings stream for {project_slug} disconnected")
    finally:
        await subscriber.close()
