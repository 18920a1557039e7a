from typing import Callable

import pytest

from nss_admin.auth.guard import (
    ALLOWED,
    AccessGuard,
    Allowed,
    Denied,
    DenialReason,
    can_access,
    guard,
    has_permission,
    raise_for_decision,
)
from nss_admin.auth.identity import Identity
from nss_admin.auth.roles import ROLE_RANK, Action, Permission, Role, default_permissions
from nss_admin.errors import AuthenticationRequired, PermissionDenied

MakeIdentity = Callable[..., Identity]


def test_viewer_cannot_delete_activities(make_identity: MakeIdentity) -> None:
    viewer = make_identity("viewer")

    assert has_permission(viewer, "activities", "delete") is False
    decision = guard(viewer, resource="activities", action="delete")
    assert isinstance(decision, Denied)
    assert decision.reason is DenialReason.INSUFFICIENT_PERMISSION
    assert decision.message == (
        "You don't have permission to delete activities. Contact your administrator for access."
    )


def test_admin_can_delete_team(make_identity: MakeIdentity) -> None:
    admin = make_identity("admin")

    assert has_permission(admin, "team", "delete") is True
    assert guard(admin, resource="team", action="delete") is ALLOWED


def test_admin_cannot_reach_super_admin_regions(make_identity: MakeIdentity) -> None:
    admin = make_identity("admin")

    assert can_access(admin, "super_admin") is False
    assert can_access(admin, Role.ADMIN) is True
    assert can_access(admin, "viewer") is True


def test_nobody_logged_in_is_denied_everything() -> None:
    assert has_permission(None, "dashboard", "read") is False
    assert can_access(None, "viewer") is False

    decision = guard(None, resource="dashboard", action="read")
    assert isinstance(decision, Denied)
    assert decision.reason is DenialReason.NOT_AUTHENTICATED
    assert decision.message == "You must be logged in to access this content."


def test_guard_without_requirements_only_needs_a_login(make_identity: MakeIdentity) -> None:
    assert isinstance(guard(make_identity("viewer")), Allowed)


def test_role_check_runs_before_permission_check(make_identity: MakeIdentity) -> None:
    editor = make_identity("editor")

    decision = guard(editor, role="admin", resource="gallery", action="delete")

    assert isinstance(decision, Denied)
    assert decision.reason is DenialReason.INSUFFICIENT_ROLE
    assert decision.required_role == "admin"
    assert decision.message == (
        "You don't have sufficient permissions to access this content. "
        "Required role: Admin, your role: Editor."
    )


def test_resource_without_action_is_not_checked(make_identity: MakeIdentity) -> None:
    viewer = make_identity("viewer", permissions=[])
    assert guard(viewer, resource="users") is ALLOWED


def test_permission_check_uses_identity_list_not_role_defaults(make_identity: MakeIdentity) -> None:
    viewer = make_identity(
        "viewer",
        permissions=[Permission(resource="activities", actions=["read", "delete"])],
    )
    admin = make_identity("admin", permissions=[])

    assert has_permission(viewer, "activities", "delete") is True
    assert has_permission(admin, "team", "delete") is False


def test_permission_for_unlisted_resource_is_denied(make_identity: MakeIdentity) -> None:
    assert has_permission(make_identity("super_admin"), "blood_requests", "read") is False


def test_unknown_action_is_denied(make_identity: MakeIdentity) -> None:
    assert has_permission(make_identity("super_admin"), "users", "publish") is False


def test_unknown_role_has_no_role_access(
    make_identity: MakeIdentity, caplog: pytest.LogCaptureFixture
) -> None:
    stranger = make_identity("owner", permissions=[Permission(resource="team", actions=["read"])])

    with caplog.at_level("WARNING"):
        assert can_access(stranger, "viewer") is False
    assert any("owner" in record.getMessage() for record in caplog.records)
    assert has_permission(stranger, "team", "read") is True


def test_unknown_required_role_is_denied(make_identity: MakeIdentity) -> None:
    assert can_access(make_identity("super_admin"), "owner") is False


def test_non_list_permissions_are_denied(caplog: pytest.LogCaptureFixture) -> None:
    broken = Identity.model_construct(id="1", username="broken", role="admin", permissions=None)

    with caplog.at_level("WARNING"):
        assert has_permission(broken, "team", "read") is False
    assert any("invalid permissions" in record.getMessage() for record in caplog.records)


def test_checks_are_pure(make_identity: MakeIdentity) -> None:
    editor = make_identity("editor")
    before = editor.model_dump()

    results = {
        (has_permission(editor, "team", "update"), can_access(editor, "admin"))
        for _ in range(3)
    }
    decisions = {guard(editor, resource="team", action="delete") for _ in range(3)}

    assert results == {(True, False)}
    assert len(decisions) == 1
    assert editor.model_dump() == before


def test_action_enum_and_string_agree(make_identity: MakeIdentity) -> None:
    editor = make_identity("editor")
    assert has_permission(editor, "reports", Action.CREATE) == has_permission(editor, "reports", "create")


def test_raise_for_decision_maps_reasons() -> None:
    raise_for_decision(ALLOWED)

    with pytest.raises(AuthenticationRequired) as unauthenticated:
        raise_for_decision(guard(None))
    assert unauthenticated.value.status_code == 401

    denied = Denied(reason=DenialReason.INSUFFICIENT_PERMISSION, message="nope", resource="team", action="delete")
    with pytest.raises(PermissionDenied) as forbidden:
        raise_for_decision(denied)
    assert forbidden.value.status_code == 403
    assert forbidden.value.details == {
        "reason": "insufficient permission",
        "resource": "team",
        "action": "delete",
        "required_role": None,
    }


class _StubSession:
    def __init__(self, identity: Identity | None) -> None:
        self.identity = identity


def test_access_guard_reads_identity_from_session(make_identity: MakeIdentity) -> None:
    editor = make_identity("editor")
    access = AccessGuard(_StubSession(editor))  # type: ignore[arg-type]

    assert access.identity == editor
    assert access.has_permission("gallery", "delete") is True
    assert access.can_access("admin") is False
    assert access.require(resource="gallery", action="delete") == editor


def test_access_guard_require_raises(make_identity: MakeIdentity, caplog: pytest.LogCaptureFixture) -> None:
    with pytest.raises(AuthenticationRequired):
        AccessGuard(None).require()

    access = AccessGuard(_StubSession(make_identity("viewer")))  # type: ignore[arg-type]
    with caplog.at_level("WARNING"):
        with pytest.raises(PermissionDenied):
            access.require(resource="activities", action="create")
    assert any("Access denied user=user-viewer" in record.getMessage() for record in caplog.records)


ROLE_PAIRS = [(lower, higher) for lower in Role for higher in Role if ROLE_RANK[lower] < ROLE_RANK[higher]]

DEFAULT_GRANTS = [
    (role, permission.resource, frozenset(permission.actions))
    for role in Role
    for permission in default_permissions(role)
]


@pytest.mark.parametrize("role", list(Role))
def test_every_role_reaches_its_own_rank(make_identity: MakeIdentity, role: Role) -> None:
    assert can_access(make_identity(role.value), role) is True


@pytest.mark.parametrize(("lower", "higher"), ROLE_PAIRS)
def test_higher_rank_reaches_lower_but_not_the_reverse(
    make_identity: MakeIdentity, lower: Role, higher: Role
) -> None:
    assert can_access(make_identity(higher.value), lower) is True
    assert can_access(make_identity(lower.value), higher) is False


@pytest.mark.parametrize("action", list(Action))
@pytest.mark.parametrize(("role", "resource", "granted"), DEFAULT_GRANTS)
def test_default_grants_allow_exactly_their_actions(
    make_identity: MakeIdentity,
    role: Role,
    resource: str,
    granted: frozenset[Action],
    action: Action,
) -> None:
    identity = make_identity(role.value)

    assert has_permission(identity, resource, action) is (action in granted)
    assert has_permission(identity, resource, action.value) is (action in granted)


class _VanishingSession:
    """Holds an identity for the guard check, then loses it."""

    def __init__(self, identity: Identity) -> None:
        self._reads = [identity]

    @property
    def identity(self) -> Identity | None:
        return self._reads.pop() if self._reads else None


def test_access_guard_require_never_returns_without_identity(make_identity: MakeIdentity) -> None:
    access = AccessGuard(_VanishingSession(make_identity("editor")))  # type: ignore[arg-type]

    with pytest.raises(AuthenticationRequired):
        access.require(resource="gallery", action="read")
