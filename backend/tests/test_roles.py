import pytest

from nss_admin.auth.roles import (
    ROLE_RANK,
    Action,
    Permission,
    Role,
    assignable_roles,
    covered_resources,
    default_permissions,
    is_known_role,
    parse_role,
    rank_of,
    role_display_name,
    roles_by_rank,
)
from nss_admin.errors import UnknownRole


def _as_table(role: str) -> dict[str, set[str]]:
    return {
        permission.resource: {action.value for action in permission.actions}
        for permission in default_permissions(role)
    }


def test_role_ranks_are_strictly_ordered() -> None:
    assert [rank_of(role) for role in roles_by_rank()] == [1, 2, 3, 4]
    assert roles_by_rank() == [Role.VIEWER, Role.EDITOR, Role.ADMIN, Role.SUPER_ADMIN]
    assert len(set(ROLE_RANK.values())) == len(Role)


def test_rank_of_accepts_plain_strings() -> None:
    assert rank_of("admin") == rank_of(Role.ADMIN) == 3


@pytest.mark.parametrize("value", ["owner", "", "ADMIN", None, 3])
def test_unknown_roles_are_rejected(value: object) -> None:
    with pytest.raises(UnknownRole):
        parse_role(value)  # type: ignore[arg-type]
    assert is_known_role(value) is False


def test_unknown_role_is_a_value_error() -> None:
    with pytest.raises(ValueError, match="Unknown role: 'owner'"):
        rank_of("owner")


def test_viewer_defaults_are_read_only() -> None:
    table = _as_table("viewer")
    assert set(table) == {"dashboard", "reports", "activities", "gallery", "team", "achievements"}
    assert all(actions == {"read"} for actions in table.values())


def test_editor_defaults() -> None:
    assert _as_table("editor") == {
        "dashboard": {"read"},
        "reports": {"read", "create", "update"},
        "activities": {"read", "create", "update"},
        "gallery": {"read", "create", "update", "delete"},
        "team": {"read", "update"},
        "achievements": {"read", "create", "update"},
    }


def test_admin_defaults_manage_content_and_users_without_delete() -> None:
    table = _as_table("admin")
    assert len(table) == 7
    for resource in ("reports", "activities", "gallery", "team", "achievements"):
        assert table[resource] == {"read", "create", "update", "delete"}
    assert table["users"] == {"read", "create", "update"}
    assert "settings" not in table


def test_super_admin_defaults_cover_every_resource() -> None:
    table = _as_table("super_admin")
    assert len(table) == 9
    assert table["dashboard"] == {"read"}
    for resource in ("users", "settings", "system"):
        assert table[resource] == {"read", "create", "update", "delete"}


def test_default_tables_grow_with_rank() -> None:
    previous: frozenset[str] = frozenset()
    for role in roles_by_rank():
        resources = covered_resources(default_permissions(role))
        assert previous <= resources
        previous = resources


def test_no_role_grants_blood_requests_by_default() -> None:
    for role in Role:
        assert "blood_requests" not in covered_resources(default_permissions(role))


def test_default_permissions_returns_a_fresh_list() -> None:
    first = default_permissions("editor")
    second = default_permissions("editor")
    assert first == second
    assert first is not second
    first.clear()
    assert len(default_permissions("editor")) == 6


def test_default_permissions_for_unknown_role_is_empty() -> None:
    assert default_permissions("owner") == []
    assert default_permissions(None) == []


def test_permission_deduplicates_actions() -> None:
    permission = Permission(resource="team", actions=["read", "read", "update"])
    assert permission.actions == (Action.READ, Action.UPDATE)


def test_permission_allows_only_listed_actions() -> None:
    permission = Permission(resource="team", actions=[Action.READ])
    assert permission.allows("read")
    assert permission.allows(Action.READ)
    assert not permission.allows("delete")
    assert not permission.allows("publish")


def test_permission_requires_resource() -> None:
    with pytest.raises(ValueError):
        Permission(resource="", actions=["read"])


def test_assignable_roles_are_capped_at_own_rank() -> None:
    assert assignable_roles("viewer") == [Role.VIEWER]
    assert assignable_roles("admin") == [Role.VIEWER, Role.EDITOR, Role.ADMIN]
    assert assignable_roles("super_admin") == list(Role)
    assert assignable_roles("owner") == []


def test_role_display_names() -> None:
    assert role_display_name("super_admin") == "Super Admin"
    assert role_display_name(Role.EDITOR) == "Editor"
    assert role_display_name("owner") == "Unknown"
