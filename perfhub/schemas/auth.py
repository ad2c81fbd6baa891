from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from perfhub.schemas.common import CamelModel, Timestamp


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class RefreshRequest(BaseModel):
    refresh_token: str


class Token(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str
    user: Optional[dict] = None


class UserProfile(CamelModel):
    uid: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    role: str = "employee"
    active: bool = True
    photo_url: Optional[str] = Field(default=None, alias="photoURL")
    created_at: Timestamp = None
    last_login: Timestamp = None
    employee_id: Optional[str] = None
