"""
Credential stores: who can authenticate, independent of what they may do.

UserDirectory keeps admin accounts in the key-value store under a single
``users`` table. Each record is an identity plus a ``passwordHash`` field.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Iterable, Protocol

from ..errors import ConflictError, MalformedSession, NotFoundError, ValidationError
from ..storage.base import KeyValueStore
from ..utils.clock import Clock, utc_now
from ..utils.ids import generate_id
from .identity import Identity, parse_identity_snapshot
from .passwords import DUMMY_PASSWORD_HASH, hash_password, verify_password
from .roles import Permission, Role, default_permissions, parse_role

if TYPE_CHECKING:
    from ..config import Settings

logger = logging.getLogger("nss_admin.auth.credentials")

USERS_KEY = "users"
PASSWORD_HASH_FIELD = "passwordHash"


class CredentialStore(Protocol):
    def verify(self, username: str, password: str) -> Identity | None:
        """Return the identity for matching, active credentials, else None."""
        ...

    def record_login(self, identity: Identity) -> None:
        ...


@dataclass(frozen=True)
class AccountSeed:
    username: str
    password: str
    role: Role
    email: str = ""


# Well-known demo logins, seeded only when explicitly enabled
DEMO_ACCOUNTS: tuple[AccountSeed, ...] = (
    AccountSeed("admin", "admin2024", Role.ADMIN, "admin@nss.edu"),
    AccountSeed("editor", "editor2024", Role.EDITOR, "editor@nss.edu"),
    AccountSeed("viewer", "viewer2024", Role.VIEWER, "viewer@nss.edu"),
)


class UserDirectory:
    """Admin accounts persisted in a key-value store."""

    def __init__(
        self,
        store: KeyValueStore,
        *,
        bootstrap_username: str | None = None,
        users_key: str = USERS_KEY,
        clock: Clock = utc_now,
    ) -> None:
        self._store = store
        self._users_key = users_key
        self._clock = clock
        self.bootstrap_username = bootstrap_username

    # -- raw records -------------------------------------------------------

    def _load_records(self) -> list[dict[str, Any]]:
        records = self._store.read(self._users_key, [])
        if not isinstance(records, list):
            logger.error("Users table is not a list (got %s); treating as empty", type(records).__name__)
            return []
        return [record for record in records if isinstance(record, dict)]

    def _save_records(self, records: list[dict[str, Any]]) -> None:
        self._store.write(self._users_key, records)

    @staticmethod
    def _to_identity(record: dict[str, Any]) -> Identity | None:
        data = {key: value for key, value in record.items() if key != PASSWORD_HASH_FIELD}
        try:
            return parse_identity_snapshot(data).identity
        except MalformedSession:
            logger.warning("Skipping malformed user record id=%s", record.get("id"))
            return None

    @staticmethod
    def _to_record(identity: Identity, password_hash: str | None) -> dict[str, Any]:
        record = identity.to_record()
        record[PASSWORD_HASH_FIELD] = password_hash
        return record

    def _find_index(self, records: list[dict[str, Any]], user_id: str) -> int:
        for index, record in enumerate(records):
            if record.get("id") == user_id:
                return index
        raise NotFoundError("User not found", details={"id": user_id})

    # -- CredentialStore ---------------------------------------------------

    def verify(self, username: str, password: str) -> Identity | None:
        record = next(
            (r for r in self._load_records() if r.get("username") == username),
            None,
        )
        if record is None:
            verify_password(password, DUMMY_PASSWORD_HASH)
            return None
        if not verify_password(password, record.get(PASSWORD_HASH_FIELD)):
            return None
        identity = self._to_identity(record)
        if identity is None or not identity.is_active:
            return None
        return identity

    def record_login(self, identity: Identity) -> None:
        records = self._load_records()
        try:
            index = self._find_index(records, identity.id)
        except NotFoundError:
            logger.warning("Login recorded for unknown user id=%s", identity.id)
            return
        records[index]["lastLogin"] = identity.last_login
        self._save_records(records)

    # -- management --------------------------------------------------------

    def list_users(self) -> list[Identity]:
        identities = (self._to_identity(record) for record in self._load_records())
        return [identity for identity in identities if identity is not None]

    def get_user(self, user_id: str) -> Identity:
        records = self._load_records()
        identity = self._to_identity(records[self._find_index(records, user_id)])
        if identity is None:
            raise NotFoundError("User not found", details={"id": user_id})
        return identity

    def find_by_id(self, user_id: str) -> Identity | None:
        for record in self._load_records():
            if record.get("id") == user_id:
                return self._to_identity(record)
        return None

    def find_by_username(self, username: str) -> Identity | None:
        for record in self._load_records():
            if record.get("username") == username:
                return self._to_identity(record)
        return None

    def is_bootstrap(self, identity: Identity) -> bool:
        return self.bootstrap_username is not None and identity.username == self.bootstrap_username

    def create_user(
        self,
        *,
        username: str,
        password: str,
        role: Role | str,
        email: str = "",
        is_active: bool = True,
        permissions: Iterable[Permission] | None = None,
    ) -> Identity:
        if not username:
            raise ValidationError("Username is required")
        if not password:
            raise ValidationError("Password is required")
        known_role = parse_role(role)

        records = self._load_records()
        if any(record.get("username") == username for record in records):
            raise ConflictError("Username already exists", details={"username": username})

        identity = Identity(
            id=generate_id({str(record.get("id")) for record in records}),
            username=username,
            email=email,
            role=known_role.value,
            permissions=list(permissions) if permissions is not None else default_permissions(known_role),
            created_at=self._clock().isoformat(),
            is_active=is_active,
        )
        records.append(self._to_record(identity, hash_password(password)))
        self._save_records(records)
        logger.info("Created user id=%s username=%s role=%s", identity.id, username, identity.role)
        return identity

    def update_user(
        self,
        user_id: str,
        *,
        email: str | None = None,
        role: Role | str | None = None,
        is_active: bool | None = None,
        password: str | None = None,
        permissions: Iterable[Permission] | None = None,
    ) -> Identity:
        """Apply changes to a stored user.

        A role change resets permissions to the new role's defaults unless
        explicit permissions are given.
        """
        records = self._load_records()
        index = self._find_index(records, user_id)
        current = self._to_identity(records[index])
        if current is None:
            raise NotFoundError("User not found", details={"id": user_id})

        changes: dict[str, Any] = {}
        if email is not None:
            changes["email"] = email
        if is_active is not None:
            changes["is_active"] = is_active
        if role is not None:
            new_role = parse_role(role)
            changes["role"] = new_role.value
            if new_role.value != current.role:
                changes["permissions"] = default_permissions(new_role)
        if permissions is not None:
            changes["permissions"] = list(permissions)

        updated = current.model_copy(update=changes)
        password_hash = records[index].get(PASSWORD_HASH_FIELD)
        if password:
            password_hash = hash_password(password)
        records[index] = self._to_record(updated, password_hash)
        self._save_records(records)
        return updated

    def delete_user(self, user_id: str) -> None:
        records = self._load_records()
        index = self._find_index(records, user_id)
        removed = records.pop(index)
        self._save_records(records)
        logger.info("Deleted user id=%s username=%s", user_id, removed.get("username"))

    def ensure_account(self, seed: AccountSeed) -> Identity:
        """Create the account if its username is not taken yet."""
        existing = self.find_by_username(seed.username)
        if existing is not None:
            return existing
        return self.create_user(
            username=seed.username,
            password=seed.password,
            role=seed.role,
            email=seed.email,
        )


def seed_accounts(
    directory: UserDirectory,
    *,
    bootstrap: AccountSeed | None,
    include_demo: bool = False,
) -> None:
    """Seed the bootstrap super admin and, optionally, the demo accounts."""
    if bootstrap is not None:
        directory.ensure_account(bootstrap)
    elif directory.bootstrap_username and directory.find_by_username(directory.bootstrap_username) is None:
        logger.warning(
            "Bootstrap user %s does not exist and BOOTSTRAP_PASSWORD is not set",
            directory.bootstrap_username,
        )
    if include_demo:
        for seed in DEMO_ACCOUNTS:
            directory.ensure_account(seed)


def bootstrap_seed(app_settings: "Settings") -> AccountSeed | None:
    """The configured super admin account, if a bootstrap password is set."""
    if not app_settings.bootstrap_password:
        return None
    return AccountSeed(
        username=app_settings.bootstrap_username,
        password=app_settings.bootstrap_password,
        role=Role.SUPER_ADMIN,
        email=app_settings.bootstrap_email,
    )
