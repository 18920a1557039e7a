"""
Access guard: decides whether an identity may perform an operation.

Two checks exist:
- has_permission(): fine-grained, looks up (resource, action) in the
  identity's own permission list
- can_access(): coarse, compares the identity's role rank against a minimum

guard() composes both into a single decision used by admin endpoints. All
checks are pure; they never raise for bad input and never touch storage.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Union

from ..errors import AuthenticationRequired, PermissionDenied, UnknownRole
from .identity import Identity
from .roles import Action, Role, rank_of, role_display_name

if TYPE_CHECKING:
    from .session import SessionLifecycle

logger = logging.getLogger("nss_admin.auth.guard")


class DenialReason(str, Enum):
    NOT_AUTHENTICATED = "not authenticated"
    INSUFFICIENT_ROLE = "insufficient role"
    INSUFFICIENT_PERMISSION = "insufficient permission"


@dataclass(frozen=True)
class Allowed:
    allowed: bool = field(default=True, init=False)


@dataclass(frozen=True)
class Denied:
    reason: DenialReason
    message: str
    resource: str | None = None
    action: str | None = None
    required_role: str | None = None
    allowed: bool = field(default=False, init=False)

    def details(self) -> dict[str, Any]:
        return {
            "reason": self.reason.value,
            "resource": self.resource,
            "action": self.action,
            "required_role": self.required_role,
        }


Decision = Union[Allowed, Denied]

ALLOWED = Allowed()


def _value(item: Enum | str | None) -> str | None:
    if isinstance(item, Enum):
        return str(item.value)
    return item


def has_permission(
    identity: Identity | None,
    resource: str,
    action: Action | str,
) -> bool:
    """True iff the identity's entry for ``resource`` lists ``action``."""
    if identity is None:
        return False

    permissions = getattr(identity, "permissions", None)
    if not isinstance(permissions, list):
        logger.warning(
            "User %s has invalid permissions list. resource=%s action=%s",
            getattr(identity, "username", "?"),
            _value(resource),
            _value(action),
        )
        return False

    resource_name = _value(resource)
    entry = next((p for p in permissions if p.resource == resource_name), None)
    if entry is None:
        return False
    return entry.allows(action)


def can_access(identity: Identity | None, required_role: Role | str) -> bool:
    """True iff the identity's role ranks at least as high as ``required_role``.

    Unknown roles on either side count as no access.
    """
    if identity is None:
        return False
    try:
        return rank_of(identity.role) >= rank_of(required_role)
    except UnknownRole as exc:
        logger.warning(
            "Role check failed for user=%s: %s", identity.username, exc.message
        )
        return False


def guard(
    identity: Identity | None,
    *,
    resource: str | None = None,
    action: Action | str | None = None,
    role: Role | str | None = None,
) -> Decision:
    """Composite decision for a guarded region or handler.

    Checks run in order (authenticated, role, resource/action) and stop at the
    first failure.
    """
    if identity is None:
        return Denied(
            reason=DenialReason.NOT_AUTHENTICATED,
            message="You must be logged in to access this content.",
        )

    if role is not None and not can_access(identity, role):
        required = _value(role)
        return Denied(
            reason=DenialReason.INSUFFICIENT_ROLE,
            message=(
                "You don't have sufficient permissions to access this content. "
                f"Required role: {role_display_name(required)}, "
                f"your role: {role_display_name(identity.role)}."
            ),
            required_role=required,
        )

    if resource is not None and action is not None and not has_permission(identity, resource, action):
        return Denied(
            reason=DenialReason.INSUFFICIENT_PERMISSION,
            message=(
                f"You don't have permission to {_value(action)} {_value(resource)}. "
                "Contact your administrator for access."
            ),
            resource=_value(resource),
            action=_value(action),
        )

    return ALLOWED


def raise_for_decision(decision: Decision) -> None:
    """Turn a Denied decision into the matching AppError."""
    if isinstance(decision, Allowed):
        return
    if decision.reason is DenialReason.NOT_AUTHENTICATED:
        raise AuthenticationRequired(decision.message, details=decision.details())
    raise PermissionDenied(decision.message, details=decision.details())


class AccessGuard:
    """The guard checks bound to the identity held by a session.

    A missing session behaves like an unauthenticated one.
    """

    def __init__(self, session: "SessionLifecycle | None") -> None:
        self._session = session

    @property
    def identity(self) -> Identity | None:
        if self._session is None:
            return None
        return self._session.identity

    def has_permission(self, resource: str, action: Action | str) -> bool:
        return has_permission(self.identity, resource, action)

    def can_access(self, required_role: Role | str) -> bool:
        return can_access(self.identity, required_role)

    def check(
        self,
        *,
        resource: str | None = None,
        action: Action | str | None = None,
        role: Role | str | None = None,
    ) -> Decision:
        return guard(self.identity, resource=resource, action=action, role=role)

    def require(
        self,
        *,
        resource: str | None = None,
        action: Action | str | None = None,
        role: Role | str | None = None,
    ) -> Identity:
        """Return the current identity or raise if the check is denied.

        Raises:
            AuthenticationRequired: No identity in the session
            PermissionDenied: Role or permission check failed
        """
        decision = self.check(resource=resource, action=action, role=role)
        if isinstance(decision, Denied):
            username = self.identity.username if self.identity else "anonymous"
            logger.warning(
                "Access denied user=%s reason=%s resource=%s action=%s role=%s",
                username,
                decision.reason.value,
                decision.resource,
                decision.action,
                decision.required_role,
            )
        raise_for_decision(decision)
        identity = self.identity
        if identity is None:
            raise AuthenticationRequired()
        return identity
