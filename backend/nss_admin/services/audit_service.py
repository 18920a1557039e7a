"""
Audit logging for admin write actions and access denials.

Entries are written to the ``nss_admin.audit`` logger as JSON. Audit failures
are logged and never block the operation being audited.
"""
from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

from ..auth.identity import Identity

logger = logging.getLogger("nss_admin.audit")


class AuditService:
    def _emit(self, entry: dict[str, Any]) -> None:
        entry["timestamp"] = datetime.now(timezone.utc).isoformat()
        try:
            logger.info(
                "AUDIT: %s",
                json.dumps(entry, ensure_ascii=False, default=str),
                extra={"audit_entry": entry},
            )
        except (TypeError, ValueError) as exc:
            logger.error("Audit logging failed for action %s: %s", entry.get("action"), exc)

    def log_admin_action(
        self,
        *,
        actor: Identity,
        action: str,
        target_type: str,
        target_id: str,
        payload: dict[str, Any] | None = None,
    ) -> None:
        """Record a successful admin write, e.g. ``activities.delete``."""
        self._emit({
            "actor_id": actor.id,
            "actor_username": actor.username,
            "actor_role": actor.role,
            "action": action,
            "target_type": target_type,
            "target_id": str(target_id),
            "payload": payload or {},
        })

    def log_permission_denied(
        self,
        *,
        actor: Identity | None,
        reason: str,
        request_method: str,
        request_path: str,
        resource: str | None = None,
        action: str | None = None,
        required_role: str | None = None,
    ) -> None:
        self._emit({
            "actor_id": actor.id if actor else None,
            "actor_username": actor.username if actor else None,
            "action": "permission_denied",
            "reason": reason,
            "resource": resource,
            "requested_action": action,
            "required_role": required_role,
            "request_method": request_method,
            "request_path": request_path,
        })


audit_service = AuditService()
