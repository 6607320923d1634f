from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

SLUG_PATTERN = r"^[a-z0-9][a-z0-9-]*$"


class ProjectCreate(BaseModel):
    slug: str = Field(..., min_length=1, max_length=64, pattern=SLUG_PATTERN)
    name: str = Field(..., min_length=1)
    description: Optional[str] = None


class ProjectUpdate(BaseModel):
    slug: Optional[str] = Field(None, min_length=1, max_length=64, pattern=SLUG_PATTERN)
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    is_active: Optional[bool] = None
    og_title: Optional[str] = None
    og_description: Optional[str] = None
    og_image: Optional[str] = None


class ProjectResponse(BaseModel):
    id: str
    slug: str
    name: str
    description: Optional[str] = None
    is_active: bool = True
    og_title: Optional[str] = None
    og_description: Optional[str] = None
    og_image: Optional[str] = None
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
