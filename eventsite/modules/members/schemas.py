from pydantic import BaseModel, EmailStr
from typing import Literal, Optional
from datetime import datetime

MemberRole = Literal["owner", "admin", "editor", "viewer"]


class MemberProfile(BaseModel):
    name: str = "Unknown"
    email: str = "Unknown"
    organization: str = "Unknown"
    position: str = "Unknown"


class MemberInvite(BaseModel):
    email: EmailStr
    role: MemberRole = "viewer"


class MemberRoleUpdate(BaseModel):
    role: MemberRole


class MemberResponse(BaseModel):
    id: str
    project_id: Optional[str] = None
    user_id: str
    role: str
    created_at: Optional[datetime] = None
    profile: MemberProfile = MemberProfile()

    class Config:
        from_attributes = True
