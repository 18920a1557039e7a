"""
Role registry: the role hierarchy and the default permission set of each role.

The registry is process-wide configuration. Nothing in here is mutated after
import; every accessor hands out fresh copies so callers cannot alter the
canonical tables.
"""
from __future__ import annotations

from enum import Enum
from types import MappingProxyType
from typing import Final, Iterable, Mapping

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..errors import UnknownRole


class Role(str, Enum):
    """Admin roles, lowest to highest."""

    VIEWER = "viewer"
    EDITOR = "editor"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"


class Action(str, Enum):
    READ = "read"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class Resource(str, Enum):
    """Resources known to the default permission table.

    Permissions are keyed by plain strings, so resources outside this enum
    (e.g. a customised grant) are still valid.
    """

    DASHBOARD = "dashboard"
    REPORTS = "reports"
    ACTIVITIES = "activities"
    GALLERY = "gallery"
    TEAM = "team"
    ACHIEVEMENTS = "achievements"
    USERS = "users"
    SETTINGS = "settings"
    SYSTEM = "system"


class Permission(BaseModel):
    """A resource and the actions allowed on it."""

    model_config = ConfigDict(frozen=True)

    resource: str = Field(..., min_length=1)
    actions: tuple[Action, ...] = Field(default_factory=tuple)

    @field_validator("actions", mode="before")
    @classmethod
    def _dedupe_actions(cls, value: object) -> object:
        if isinstance(value, (list, tuple)):
            return tuple(dict.fromkeys(value))
        return value

    def allows(self, action: Action | str) -> bool:
        try:
            return Action(action) in self.actions
        except ValueError:
            return False


ROLE_RANK: Final[Mapping[Role, int]] = MappingProxyType({
    Role.VIEWER: 1,
    Role.EDITOR: 2,
    Role.ADMIN: 3,
    Role.SUPER_ADMIN: 4,
})

ROLE_DISPLAY_NAMES: Final[Mapping[Role, str]] = MappingProxyType({
    Role.SUPER_ADMIN: "Super Admin",
    Role.ADMIN: "Admin",
    Role.EDITOR: "Editor",
    Role.VIEWER: "Viewer",
})

_R = (Action.READ,)
_RU = (Action.READ, Action.UPDATE)
_RCU = (Action.READ, Action.CREATE, Action.UPDATE)
_RCUD = (Action.READ, Action.CREATE, Action.UPDATE, Action.DELETE)

_DEFAULT_PERMISSION_TABLE: Final[Mapping[Role, tuple[tuple[Resource, tuple[Action, ...]], ...]]] = (
    MappingProxyType({
        Role.VIEWER: (
            (Resource.DASHBOARD, _R),
            (Resource.REPORTS, _R),
            (Resource.ACTIVITIES, _R),
            (Resource.GALLERY, _R),
            (Resource.TEAM, _R),
            (Resource.ACHIEVEMENTS, _R),
        ),
        Role.EDITOR: (
            (Resource.DASHBOARD, _R),
            (Resource.REPORTS, _RCU),
            (Resource.ACTIVITIES, _RCU),
            (Resource.GALLERY, _RCUD),
            (Resource.TEAM, _RU),
            (Resource.ACHIEVEMENTS, _RCU),
        ),
        Role.ADMIN: (
            (Resource.DASHBOARD, _R),
            (Resource.REPORTS, _RCUD),
            (Resource.ACTIVITIES, _RCUD),
            (Resource.GALLERY, _RCUD),
            (Resource.TEAM, _RCUD),
            (Resource.ACHIEVEMENTS, _RCUD),
            (Resource.USERS, _RCU),
        ),
        Role.SUPER_ADMIN: (
            (Resource.DASHBOARD, _R),
            (Resource.REPORTS, _RCUD),
            (Resource.ACTIVITIES, _RCUD),
            (Resource.GALLERY, _RCUD),
            (Resource.TEAM, _RCUD),
            (Resource.ACHIEVEMENTS, _RCUD),
            (Resource.USERS, _RCUD),
            (Resource.SETTINGS, _RCUD),
            (Resource.SYSTEM, _RCUD),
        ),
    })
)


def parse_role(value: Role | str | None) -> Role:
    """Return the Role for a raw value.

    Raises:
        UnknownRole: If the value is not one of the enumerated roles
    """
    if isinstance(value, Role):
        return value
    try:
        return Role(value)
    except (TypeError, ValueError):
        raise UnknownRole(value) from None


def is_known_role(value: object) -> bool:
    try:
        parse_role(value)  # type: ignore[arg-type]
    except UnknownRole:
        return False
    return True


def rank_of(role: Role | str) -> int:
    """Numeric rank of a role; higher ranks include lower ones.

    Raises:
        UnknownRole: If the role is outside the hierarchy
    """
    return ROLE_RANK[parse_role(role)]


def default_permissions(role: Role | str | None) -> list[Permission]:
    """Canonical permission list for a role.

    An unrecognised role yields an empty list instead of an error so that
    callers degrade to zero permissions.
    """
    try:
        known = parse_role(role)
    except UnknownRole:
        return []
    return [
        Permission(resource=resource.value, actions=actions)
        for resource, actions in _DEFAULT_PERMISSION_TABLE[known]
    ]


def role_display_name(role: Role | str | None) -> str:
    try:
        return ROLE_DISPLAY_NAMES[parse_role(role)]
    except UnknownRole:
        return "Unknown"


def assignable_roles(role: Role | str | None) -> list[Role]:
    """Roles an operator holding ``role`` may hand out: its own rank and below."""
    try:
        ceiling = rank_of(role)  # type: ignore[arg-type]
    except UnknownRole:
        return []
    return [candidate for candidate in Role if ROLE_RANK[candidate] <= ceiling]


def roles_by_rank() -> list[Role]:
    return sorted(Role, key=ROLE_RANK.__getitem__)


def covered_resources(permissions: Iterable[Permission]) -> frozenset[str]:
    return frozenset(permission.resource for permission in permissions)
