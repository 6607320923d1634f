from pydantic import BaseModel, EmailStr
from typing import Optional


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_id: str
    email: str


class CurrentUserResponse(BaseModel):
    id: str
    email: Optional[str] = None
    staff_role: Optional[str] = None  # master | mnc_admin | project_staff
