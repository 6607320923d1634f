from pydantic import BaseModel, Field
from typing import List, Optional

from eventsite.core.notifications import Notification


class Permissions(BaseModel):
    is_owner: bool = False
    is_admin: bool = False
    can_edit: bool = False
    can_manage_settings: bool = False
    can_manage_members: bool = False


class ProjectAccess(Permissions):
    project_id: Optional[str] = None
    role: Optional[str] = None
    loading: bool = False
    preview: bool = False
    error: Optional[str] = None  # not_found | not_authorized | error
    redirect_to: Optional[str] = None
    notifications: List[Notification] = Field(default_factory=list)

    @classmethod
    def preview_access(cls, project_id: Optional[str] = None) -> "ProjectAccess":
        """Full access for read-only preview; never accepted by mutating routes"""
        return cls(
            project_id=project_id,
            preview=True,
            is_owner=True,
            is_admin=True,
            can_edit=True,
            can_manage_settings=True,
            can_manage_members=True,
        )
