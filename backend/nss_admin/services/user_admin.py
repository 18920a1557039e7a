"""Admin-side rules for managing accounts on top of UserDirectory."""
from __future__ import annotations

import logging

from ..auth.credentials import UserDirectory
from ..auth.identity import Identity
from ..auth.roles import Role, assignable_roles, rank_of, role_display_name, roles_by_rank
from ..errors import PermissionDenied, UnknownRole
from ..schemas.user import RoleCount, UserCreate, UserUpdate

logger = logging.getLogger("nss_admin.services.users")


class UserAdminService:
    """Account management performed by ``actor``.

    The permission to call each operation is checked by the router; this
    service enforces the rules that depend on the target account:
    - roles above the actor's own cannot be assigned
    - accounts ranked above the actor cannot be changed or deleted
    - the bootstrap account cannot be deleted, demoted or deactivated
    - nobody can delete or deactivate themselves
    """

    def __init__(self, directory: UserDirectory, actor: Identity) -> None:
        self.directory = directory
        self.actor = actor

    def _ensure_assignable(self, role: Role) -> None:
        if role not in assignable_roles(self.actor.role):
            raise PermissionDenied(
                f"You cannot assign the {role_display_name(role)} role",
                details={"role": role.value},
            )

    def _ensure_outranks_or_equals(self, target: Identity) -> None:
        try:
            target_rank = rank_of(target.role)
        except UnknownRole:
            target_rank = 0
        if target_rank > rank_of(self.actor.role):
            raise PermissionDenied(
                "You cannot manage an account with a higher role than your own",
                details={"id": target.id},
            )

    def list_users(self) -> list[Identity]:
        return self.directory.list_users()

    def role_stats(self) -> list[RoleCount]:
        users = self.directory.list_users()
        return [
            RoleCount(
                role=role,
                display_name=role_display_name(role),
                count=sum(1 for user in users if user.role == role.value),
            )
            for role in reversed(roles_by_rank())
        ]

    def create_user(self, payload: UserCreate) -> Identity:
        self._ensure_assignable(payload.role)
        return self.directory.create_user(
            username=payload.username,
            password=payload.password,
            role=payload.role,
            email=payload.email,
            is_active=payload.is_active,
        )

    def update_user(self, user_id: str, payload: UserUpdate) -> Identity:
        target = self.directory.get_user(user_id)
        self._ensure_outranks_or_equals(target)
        if payload.role is not None and payload.role.value != target.role:
            self._ensure_assignable(payload.role)
            if self.directory.is_bootstrap(target):
                raise PermissionDenied("The bootstrap account cannot change role")
        if payload.is_active is False:
            self._ensure_can_deactivate(target)
        return self.directory.update_user(
            user_id,
            email=payload.email,
            role=payload.role,
            is_active=payload.is_active,
            password=payload.password,
        )

    def _ensure_can_deactivate(self, target: Identity) -> None:
        if self.directory.is_bootstrap(target):
            raise PermissionDenied("The bootstrap account cannot be deactivated")
        if target.id == self.actor.id:
            raise PermissionDenied("You cannot deactivate your own account")

    def toggle_active(self, user_id: str) -> Identity:
        target = self.directory.get_user(user_id)
        self._ensure_outranks_or_equals(target)
        if target.is_active:
            self._ensure_can_deactivate(target)
        return self.directory.update_user(user_id, is_active=not target.is_active)

    def delete_user(self, user_id: str) -> Identity:
        target = self.directory.get_user(user_id)
        if target.id == self.actor.id:
            raise PermissionDenied("You cannot delete your own account")
        if self.directory.is_bootstrap(target):
            raise PermissionDenied("The bootstrap account cannot be deleted")
        self._ensure_outranks_or_equals(target)
        self.directory.delete_user(user_id)
        logger.info("User %s deleted by %s", target.username, self.actor.username)
        return target
