import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, WebSocket, WebSocketDisconnect

from eventsite.core.context import ServiceContext, get_context
from eventsite.core.dependencies import require_project_permission, resolve_project_access
from eventsite.modules.access.schemas import ProjectAccess
from eventsite.modules.auth.service import AuthService
from eventsite.modules.editor.service import EditorService
from eventsite.modules.editor.schemas import RegistrationField
from eventsite.modules.projects.service import ProjectService
from eventsite.modules.registrations.feed import RegistrationFeed
from eventsite.modules.registrations.schemas import (
    BulkDeleteRequest, BulkDeleteResponse, DuplicateGroup, RegistrationLookup,
    RegistrationResponse, RegistrationSnapshot, RegistrationSubmit
)
from eventsite.modules.registrations.service import RegistrationService, duplicate_key, find_duplicate_groups
from eventsite.modules.site_settings.service import SettingsService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/projects/{project_slug}/registrations", tags=["registrations"])


def get_registration_service(context: ServiceContext = Depends(get_context)) -> RegistrationService:
    return RegistrationService(context.gateway, write_gateway=context.service_gateway)


@router.post("", response_model=RegistrationResponse, status_code=201)
async def submit_registration(
    project_slug: str,
    body: RegistrationSubmit,
    context: ServiceContext = Depends(get_context),
    service: RegistrationService = Depends(get_registration_service)
):
    """Public registration form submission"""
    project = await ProjectService(context.gateway).require_by_slug(project_slug)
    if not await SettingsService(context.gateway).is_page_enabled(project.id, "registration"):
        raise HTTPException(status_code=403, detail="Registration is closed")
    collection = await EditorService(context.gateway).load(project.id, "form_fields")
    fields = [RegistrationField(**item) for item in collection.items]
    return await service.submit_registration(project.id, fields, body.data)


@router.post("/check", response_model=RegistrationResponse)
async def check_registration(
    project_slug: str,
    body: RegistrationLookup,
    context: ServiceContext = Depends(get_context),
    service: RegistrationService = Depends(get_registration_service)
):
    """Public lookup of one's own registration by name and phone"""
    project = await ProjectService(context.gateway).require_by_slug(project_slug)
    registration = await service.find_registration(project.id, body.name, body.phone)
    if registration is None:
        raise HTTPException(status_code=404, detail="No registration found for this name and phone")
    return registration


@router.get("/verify/{registration_id}", response_model=RegistrationResponse)
async def verify_registration(
    project_slug: str,
    registration_id: str,
    context: ServiceContext = Depends(get_context),
    service: RegistrationService = Depends(get_registration_service)
):
    """Resolve a QR code (registration id) to its registration"""
    project = await ProjectService(context.gateway).require_by_slug(project_slug)
    registration = await service.get_registration(project.id, registration_id)
    if registration is None:
        raise HTTPException(status_code=404, detail="Invalid QR code")
    return registration


@router.get("/duplicates", response_model=List[DuplicateGroup])
async def list_duplicates(
    fields: str = Query(..., description="Comma-separated form field ids to compare"),
    access: ProjectAccess = Depends(require_project_permission("is_admin")),
    service: RegistrationService = Depends(get_registration_service)
):
    """Groups of active registrations sharing the same values for every given field"""
    field_ids = [f.strip() for f in fields.split(",") if f.strip()]
    registrations = await service.list_registrations(access.project_id)
    return [
        DuplicateGroup(key=duplicate_key(group[0], field_ids), registrations=group)
        for group in find_duplicate_groups(registrations, field_ids)
    ]


@router.post("/bulk-delete", response_model=BulkDeleteResponse)
async def bulk_delete_registrations(
    body: BulkDeleteRequest,
    access: ProjectAccess = Depends(require_project_permission("is_admin")),
    service: RegistrationService = Depends(get_registration_service)
):
    """Delete several registrations at once (admins only)"""
    deleted = await service.delete_many(access.project_id, body.ids)
    return BulkDeleteResponse(deleted=deleted)


@router.get("", response_model=List[RegistrationResponse])
async def list_registrations(
    access: ProjectAccess = Depends(require_project_permission("can_edit")),
    service: RegistrationService = Depends(get_registration_service)
):
    """Registrations newest first"""
    return await service.list_registrations(access.project_id)


@router.delete("/{registration_id}", status_code=204)
async def delete_registration(
    registration_id: str,
    access: ProjectAccess = Depends(require_project_permission("is_admin")),
    service: RegistrationService = Depends(get_registration_service)
):
    """Delete a registration (admins only)"""
    await service.delete_registration(access.project_id, registration_id)
    return None


@router.websocket("/stream")
async def stream_registrations(
    websocket: WebSocket,
    project_slug: str,
    token: Optional[str] = Query(None)
):
    """Push the registration list on connect and after every change, with new-registration notifications"""
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

    async def push(registrations: List[Dict[str, Any]]) -> None:
        snapshot = RegistrationSnapshot(registrations=registrations, notifications=feed.notifier.drain())
        await websocket.send_json(snapshot.model_dump(mode="json"))

    feed = RegistrationFeed(context.gateway, access.project_id, on_update=push)
    try:
        await feed.start()
        await push(feed.registrations)
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.debug(f"Registration stream for {project_slug} disconnected")
    finally:
        await feed.close()
