from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional
from datetime import datetime

from eventsite.core.notifications import Notification


class RegistrationResponse(BaseModel):
    id: str
    project_id: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        extra = "allow"


class RegistrationSubmit(BaseModel):
    data: Dict[str, Any]


class RegistrationSnapshot(BaseModel):
    registrations: List[Dict[str, Any]]
    notifications: List[Notification] = []


class RegistrationLookup(BaseModel):
    name: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)


class DuplicateGroup(BaseModel):
    key: str
    registrations: List[Dict[str, Any]]


class BulkDeleteRequest(BaseModel):
    ids: List[str] = Field(..., min_length=1)


class BulkDeleteResponse(BaseModel):
    deleted: int
