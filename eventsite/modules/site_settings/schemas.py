from pydantic import BaseModel, Field
from typing import Dict, Optional


class SiteSetting(BaseModel):
    id: Optional[str] = None
    project_id: Optional[str] = None
    category: str
    key: str
    value: str = ""

    class Config:
        from_attributes = True


class SettingsUpdate(BaseModel):
    values: Dict[str, str] = Field(default_factory=dict)


class PageSettings(BaseModel):
    program: bool = True
    registration: bool = True
    location: bool = True

    def is_enabled(self, page: str) -> bool:
        """Whether the page (category name, e.g. "program") is shown; unknown pages count as enabled"""
        return bool(getattr(self, page, True))
