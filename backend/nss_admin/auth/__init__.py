from .credentials import CredentialStore, UserDirectory
from .guard import AccessGuard, Allowed, Denied, DenialReason, can_access, guard, has_permission
from .identity import Identity, parse_identity_snapshot
from .roles import Action, Permission, Resource, Role, default_permissions, rank_of
from .session import SessionLifecycle, SessionState

__all__ = [
    "AccessGuard",
    "Action",
    "Allowed",
    "CredentialStore",
    "Denied",
    "DenialReason",
    "Identity",
    "Permission",
    "Resource",
    "Role",
    "SessionLifecycle",
    "SessionState",
    "UserDirectory",
    "can_access",
    "default_permissions",
    "guard",
    "has_permission",
    "parse_identity_snapshot",
    "rank_of",
]
