from fastapi import APIRouter, Depends
from typing import Dict, List

from eventsite.config.site_config import PROJECT_MANAGER_ROLES
from eventsite.core.context import get_gateway
from eventsite.core.dependencies import (
    get_auth_service, get_current_user_id, require_project_permission, require_staff_role
)
from eventsite.database.gateway import BackendGateway
from eventsite.modules.auth.service import AuthService
from eventsite.modules.access.schemas import ProjectAccess
from eventsite.modules.projects.schemas import ProjectCreate, ProjectResponse, ProjectUpdate
from eventsite.modules.projects.service import ProjectService

router = APIRouter(prefix="/projects", tags=["projects"])


def get_project_service(gateway: BackendGateway = Depends(get_gateway)) -> ProjectService:
    return ProjectService(gateway)


@router.get("", response_model=List[ProjectResponse])
async def list_projects(
    user_data: Dict = Depends(get_current_user_id),
    auth_service: AuthService = Depends(get_auth_service),
    service: ProjectService = Depends(get_project_service)
):
    """List projects the user is a member of (or all for project managers)"""
    staff_role = await auth_service.get_staff_role(user_data["id"])
    member_of_user_id = None if staff_role in PROJECT_MANAGER_ROLES else user_data["id"]
    return await service.list_projects(member_of_user_id=member_of_user_id)


@router.post("", response_model=ProjectResponse, status_code=201)
async def create_project(
    project_data: ProjectCreate,
    user_data: Dict = Depends(require_staff_role(PROJECT_MANAGER_ROLES)),
    service: ProjectService = Depends(get_project_service)
):
    """Create a project; the creator becomes its owner and the template project's settings are copied in"""
    return await service.create_project(project_data, user_data["id"])


@router.put("/{project_slug}", response_model=ProjectResponse)
async def update_project(
    project_slug: str,
    project_data: ProjectUpdate,
    access: ProjectAccess = Depends(require_project_permission("is_admin")),
    service: ProjectService = Depends(get_project_service)
):
    """Edit name, slug, description, active flag and link preview metadata (project admins)"""
    return await service.update_project(project_slug, project_data)


@router.delete("/{project_slug}", status_code=204)
async def delete_project(
    project_slug: str,
    user_data: Dict = Depends(require_staff_role(PROJECT_MANAGER_ROLES)),
    service: ProjectService = Depends(get_project_service)
):
    """Delete a project with all its settings, members and registrations"""
    await service.delete_project(project_slug)
    return None
