"""Identity records and parsing of persisted session snapshots."""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from ..errors import MalformedSession
from .roles import Permission, default_permissions, is_known_role

logger = logging.getLogger("nss_admin.auth.identity")


class Identity(BaseModel):
    """An admin user as carried by a session.

    Serialised with camelCase keys (``createdAt``, ``lastLogin``, ``isActive``)
    to stay compatible with snapshots written by the browser client.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    id: str = Field(..., min_length=1)
    username: str = Field(..., min_length=1)
    email: str = ""
    role: str = Field(..., min_length=1)
    permissions: list[Permission] = Field(default_factory=list)
    created_at: str = ""
    last_login: str | None = None
    is_active: bool = True

    @property
    def has_known_role(self) -> bool:
        return is_known_role(self.role)

    def stamped_login(self, at: datetime) -> "Identity":
        return self.model_copy(update={"last_login": at.isoformat()})

    def to_record(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)

    def to_snapshot(self) -> str:
        return self.model_dump_json(by_alias=True)


@dataclass(frozen=True)
class LoadedSnapshot:
    identity: Identity
    repaired: bool = False


def _decode(raw: object) -> dict[str, Any]:
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8", errors="replace")
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise MalformedSession(details={"reason": f"invalid JSON: {exc.msg}"}) from exc
    if not isinstance(raw, dict):
        raise MalformedSession(details={"reason": "snapshot is not an object"})
    return dict(raw)


def _permissions_are_valid(value: object) -> bool:
    if not isinstance(value, list):
        return False
    try:
        for entry in value:
            Permission.model_validate(entry)
    except PydanticValidationError:
        return False
    return True


def parse_identity_snapshot(raw: object) -> LoadedSnapshot:
    """Turn a persisted snapshot into an Identity.

    A snapshot whose ``permissions`` are missing or malformed is repaired with
    the role's default permissions. Anything else that cannot be read as an
    identity raises MalformedSession.
    """
    data = _decode(raw)

    repaired = False
    if not _permissions_are_valid(data.get("permissions")):
        role = data.get("role")
        data["permissions"] = [
            permission.model_dump(mode="json") for permission in default_permissions(role)
        ]
        repaired = True

    try:
        identity = Identity.model_validate(data)
    except PydanticValidationError as exc:
        raise MalformedSession(
            details={
                "reason": "snapshot does not describe an identity",
                "error_count": exc.error_count(),
            }
        ) from exc

    if repaired:
        logger.warning(
            "Corrected missing/malformed permissions for user=%s; assigned defaults for role=%s",
            identity.username,
            identity.role,
        )
    return LoadedSnapshot(identity=identity, repaired=repaired)
