from pydantic import Field

from ..auth.identity import Identity
from ..auth.roles import Permission, Role, assignable_roles, role_display_name
from .base import CamelModel


class LoginRequest(CamelModel):
    username: str = Field(..., min_length=1, max_length=150)
    password: str = Field(..., min_length=1, max_length=256)


class UserRead(CamelModel):
    id: str
    username: str
    email: str
    role: str
    role_display_name: str
    permissions: list[Permission]
    created_at: str
    last_login: str | None = None
    is_active: bool

    @classmethod
    def from_identity(cls, identity: Identity) -> "UserRead":
        return cls(
            id=identity.id,
            username=identity.username,
            email=identity.email,
            role=identity.role,
            role_display_name=role_display_name(identity.role),
            permissions=identity.permissions,
            created_at=identity.created_at,
            last_login=identity.last_login,
            is_active=identity.is_active,
        )


class CurrentUserRead(UserRead):
    assignable_roles: list[Role]

    @classmethod
    def from_identity(cls, identity: Identity) -> "CurrentUserRead":
        base = UserRead.from_identity(identity)
        return cls(
            **base.model_dump(),
            assignable_roles=assignable_roles(identity.role),
        )


class TokenResponse(CamelModel):
    access_token: str
    token_type: str = "bearer"
    user: CurrentUserRead
