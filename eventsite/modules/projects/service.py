import logging
from typing import List, Optional

from fastapi import HTTPException

from eventsite.config.site_config import TEMPLATE_PROJECT_SLUG
from eventsite.core.exceptions import ProjectNotFoundError, TransientFetchError
from eventsite.database.gateway import BackendGateway
from eventsite.modules.projects.schemas import ProjectCreate, ProjectResponse, ProjectUpdate

logger = logging.getLogger(__name__)

# Row bookkeeping columns not carried over when copying settings
_COPY_EXCLUDED_COLUMNS = {"id", "created_at", "updated_at", "project_id"}


class ProjectService:
    def __init__(self, gateway: BackendGateway):
        self.gateway = gateway

    async def get_by_slug(self, slug: str) -> Optional[ProjectResponse]:
        """Exact-match slug lookup; None when no project has this slug"""
        row = await self.gateway.select_one("projects", {"slug": slug})
        return ProjectResponse(**row) if row else None

    async def require_by_slug(self, slug: str) -> ProjectResponse:
        project = await self.get_by_slug(slug)
        if project is None:
            raise ProjectNotFoundError(slug)
        return project

    async def list_projects(self, member_of_user_id: Optional[str] = None) -> List[ProjectResponse]:
        """List projects; restricted to the user's memberships when member_of_user_id is given"""
        if member_of_user_id is None:
            rows = await self.gateway.select_where("projects", order_by="created_at", desc=True)
            return [ProjectResponse(**row) for row in rows]
        memberships = await self.gateway.select_where(
            "project_members", {"user_id": member_of_user_id}, columns="project_id"
        )
        project_ids = [m["project_id"] for m in memberships]
        if not project_ids:
            return []
        rows = await self.gateway.select_where(
            "projects", in_filters={"id": project_ids}, order_by="created_at", desc=True
        )
        return [ProjectResponse(**row) for row in rows]

    async def create_project(self, project_data: ProjectCreate, user_id: str) -> ProjectResponse:
        """Create a project, add its creator as owner and seed it with the template project's settings"""
        if await self.get_by_slug(project_data.slug) is not None:
            raise HTTPException(status_code=400, detail="A project with this slug already exists")

        rows = await self.gateway.insert("projects", {
            "slug": project_data.slug,
            "name": project_data.name,
            "description": project_data.description or None,
            "created_by": user_id,
            "is_active": True,
        })
        project = ProjectResponse(**rows[0])
        await self.gateway.insert("project_members", {
            "project_id": project.id,
            "user_id": user_id,
            "role": "owner",
        })
        await self.copy_template_settings(project.id)
        logger.info(f"Created project {project.slug} ({project.id})")
        return project

    async def copy_template_settings(self, project_id: str) -> int:
        """Copy every site setting of the template project into project_id.

        A missing template project copies nothing. A failed copy is logged and
        leaves the new project with default settings.
        """
        try:
            template = await self.get_by_slug(TEMPLATE_PROJECT_SLUG)
            if template is None or template.id == project_id:
                return 0
            rows = await self.gateway.select_where("site_settings", {"project_id": template.id})
            if not rows:
                return 0
            copies = [
                {**{k: v for k, v in row.items() if k not in _COPY_EXCLUDED_COLUMNS}, "project_id": project_id}
                for row in rows
            ]
            await self.gateway.insert("site_settings", copies)
            logger.info(f"Copied {len(copies)} template setting(s) into project {project_id}")
            return len(copies)
        except TransientFetchError as e:
            logger.error(f"Error copying template settings into project {project_id}: {e}")
            return 0

    async def update_project(self, slug: str, project_data: ProjectUpdate) -> ProjectResponse:
        """Update project details; a new slug must not belong to another project"""
        project = await self.require_by_slug(slug)
        update_data = project_data.model_dump(exclude_unset=True)
        if "description" in update_data and not update_data["description"]:
            update_data["description"] = None
        new_slug = update_data.get("slug")
        if new_slug and new_slug != project.slug:
            if await self.get_by_slug(new_slug) is not None:
                raise HTTPException(status_code=400, detail="A project with this slug already exists")
        if not update_data:
            return project

        rows = await self.gateway.update("projects", {"id": project.id}, update_data)
        if not rows:
            raise ProjectNotFoundError(slug)
        logger.info(f"Updated project {project.id} ({', '.join(update_data)})")
        return ProjectResponse(**rows[0])

    async def delete_project(self, slug: str) -> bool:
        project = await self.require_by_slug(slug)
        deleted = await self.gateway.delete("projects", {"id": project.id})
        logger.info(f"Deleted project {slug}")
        return len(deleted) > 0
