from pydantic import Field

from ..auth.roles import Role
from .base import CamelModel


class UserCreate(CamelModel):
    username: str = Field(..., min_length=1, max_length=150)
    email: str = Field(default="", max_length=255)
    password: str = Field(..., min_length=8, max_length=256)
    role: Role = Role.VIEWER
    is_active: bool = True


class UserUpdate(CamelModel):
    email: str | None = Field(None, max_length=255)
    password: str | None = Field(None, min_length=8, max_length=256)
    role: Role | None = None
    is_active: bool | None = None


class RoleCount(CamelModel):
    role: Role
    display_name: str
    count: int
