from fastapi import APIRouter, Depends, HTTPException
from pydantic import ValidationError
from typing import Any, Callable

from eventsite.core.context import get_gateway
from eventsite.core.dependencies import get_project_access, require_project_permission
from eventsite.database.gateway import BackendGateway
from eventsite.modules.access.schemas import ProjectAccess
from eventsite.modules.editor.collection import SortableCollection
from eventsite.modules.editor.schemas import (
    DragEndRequest, ItemCreate, ItemUpdate, PanelReplace, PanelResponse, ReorderRequest
)
from eventsite.modules.editor.service import EditorService

router = APIRouter(prefix="/projects/{project_slug}/panels", tags=["editor"])


def get_editor_service(gateway: BackendGateway = Depends(get_gateway)) -> EditorService:
    return EditorService(gateway)


def _check_panel(panel: str) -> dict:
    try:
        return EditorService.panel_config(panel)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Unknown panel: {panel}")


async def _apply(
    service: EditorService,
    project_id: str,
    panel: str,
    operation: Callable[[SortableCollection], Any],
) -> PanelResponse:
    config = _check_panel(panel)
    try:
        _, items = await service.apply(project_id, panel, operation)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=f"Item not found: {e.args[0]}")
    except IndexError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False))
    return PanelResponse(panel=panel, key=config["key"], items=items)


@router.get("/{panel}", response_model=PanelResponse)
async def get_panel(
    panel: str,
    access: ProjectAccess = Depends(get_project_access),
    service: EditorService = Depends(get_editor_service)
):
    """Ordered items of a panel (preview allowed)"""
    config = _check_panel(panel)
    collection = await service.load(access.project_id, panel)
    return PanelResponse(panel=panel, key=config["key"], items=collection.items)


@router.put("/{panel}", response_model=PanelResponse)
async def replace_panel(
    panel: str,
    body: PanelReplace,
    access: ProjectAccess = Depends(require_project_permission("can_edit")),
    service: EditorService = Depends(get_editor_service)
):
    """Replace the whole ordered collection"""
    return await _apply(service, access.project_id, panel, lambda c: c.replace(body.items))


@router.post("/{panel}/items", response_model=PanelResponse, status_code=201)
async def add_item(
    panel: str,
    body: ItemCreate,
    access: ProjectAccess = Depends(require_project_permission("can_edit")),
    service: EditorService = Depends(get_editor_service)
):
    """Append a new item, or insert it at body.index"""
    _check_panel(panel)
    fields = service.new_item_fields(panel, body.fields)

    def add(collection: SortableCollection):
        if body.index is None:
            return collection.append(fields)
        return collection.insert(body.index, fields)

    return await _apply(service, access.project_id, panel, add)


@router.post("/{panel}/items/{item_id}/duplicate", response_model=PanelResponse, status_code=201)
async def duplicate_item(
    panel: str,
    item_id: str,
    access: ProjectAccess = Depends(require_project_permission("can_edit")),
    service: EditorService = Depends(get_editor_service)
):
    """Insert a copy of the item right after it"""
    return await _apply(service, access.project_id, panel, lambda c: c.duplicate(item_id))


@router.patch("/{panel}/items/{item_id}", response_model=PanelResponse)
async def update_item(
    panel: str,
    item_id: str,
    body: ItemUpdate,
    access: ProjectAccess = Depends(require_project_permission("can_edit")),
    service: EditorService = Depends(get_editor_service)
):
    """Merge fields into the item"""
    return await _apply(service, access.project_id, panel, lambda c: c.update(item_id, body.fields))


@router.delete("/{panel}/items/{item_id}", response_model=PanelResponse)
async def remove_item(
    panel: str,
    item_id: str,
    access: ProjectAccess = Depends(require_project_permission("can_edit")),
    service: EditorService = Depends(get_editor_service)
):
    """Remove the item"""
    return await _apply(service, access.project_id, panel, lambda c: c.remove(item_id))


@router.post("/{panel}/reorder", response_model=PanelResponse)
async def reorder_items(
    panel: str,
    body: ReorderRequest,
    access: ProjectAccess = Depends(require_project_permission("can_edit")),
    service: EditorService = Depends(get_editor_service)
):
    """Move the item at source_index to target_index"""
    return await _apply(
        service, access.project_id, panel, lambda c: c.move(body.source_index, body.target_index)
    )


@router.post("/{panel}/drag-end", response_model=PanelResponse)
async def drag_end(
    panel: str,
    body: DragEndRequest,
    access: ProjectAccess = Depends(require_project_permission("can_edit")),
    service: EditorService = Depends(get_editor_service)
):
    """Apply a drag-end event (active item dropped over another item)"""
    return await _apply(
        service, access.project_id, panel, lambda c: c.apply_drag_end(body.active_id, body.over_id)
    )
