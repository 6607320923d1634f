from pydantic import BaseModel
from typing import Literal, Optional
from datetime import datetime

StaffRole = Literal["master", "mnc_admin", "project_staff"]


class StaffRoleUpdate(BaseModel):
    role: Optional[StaffRole] = None  # None revokes the staff role


class UserResponse(BaseModel):
    user_id: str
    email: Optional[str] = None
    name: Optional[str] = None
    approved: bool = False
    staff_role: Optional[str] = None
    is_admin: bool = False
    created_at: Optional[datetime] = None
