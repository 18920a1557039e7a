import pytest

from nss_admin.auth.credentials import (
    DEMO_ACCOUNTS,
    PASSWORD_HASH_FIELD,
    AccountSeed,
    UserDirectory,
    bootstrap_seed,
    seed_accounts,
)
from nss_admin.auth.passwords import hash_password, verify_password
from nss_admin.auth.roles import Permission, Role, default_permissions
from nss_admin.config import Settings
from nss_admin.errors import ConflictError, NotFoundError, UnknownRole
from nss_admin.storage import MemoryStore

BOOTSTRAP_USERNAME = "root"


def test_password_hash_round_trip() -> None:
    encoded = hash_password("s3cret-pass")

    assert encoded.startswith("pbkdf2_sha256$")
    assert "s3cret-pass" not in encoded
    assert verify_password("s3cret-pass", encoded) is True
    assert verify_password("s3cret-Pass", encoded) is False


@pytest.mark.parametrize("encoded", [None, "", "plaintext", "md5$1$c2FsdA==$ZGlnZXN0", "pbkdf2_sha256$x$a$b"])
def test_verify_password_rejects_unusable_hashes(encoded: str | None) -> None:
    assert verify_password("anything", encoded) is False


def test_seeded_accounts(directory: UserDirectory) -> None:
    usernames = {user.username: user.role for user in directory.list_users()}

    assert usernames == {
        BOOTSTRAP_USERNAME: "super_admin",
        "admin": "admin",
        "editor": "editor",
        "viewer": "viewer",
    }


def test_passwords_are_stored_hashed(store: MemoryStore, directory: UserDirectory) -> None:
    records = store.read("users", [])

    for seed in DEMO_ACCOUNTS:
        record = next(r for r in records if r["username"] == seed.username)
        assert record[PASSWORD_HASH_FIELD] != seed.password
        assert verify_password(seed.password, record[PASSWORD_HASH_FIELD])


def test_seeding_is_idempotent(directory: UserDirectory) -> None:
    before = directory.list_users()

    seed_accounts(directory, bootstrap=AccountSeed(BOOTSTRAP_USERNAME, "other", Role.SUPER_ADMIN), include_demo=True)

    assert directory.list_users() == before
    assert directory.verify(BOOTSTRAP_USERNAME, "other") is None


def test_missing_bootstrap_password_is_logged(store: MemoryStore, caplog: pytest.LogCaptureFixture) -> None:
    users = UserDirectory(store, bootstrap_username="root")

    with caplog.at_level("WARNING"):
        seed_accounts(users, bootstrap=None)

    assert users.list_users() == []
    assert any("BOOTSTRAP_PASSWORD is not set" in record.getMessage() for record in caplog.records)


def test_verify(directory: UserDirectory) -> None:
    identity = directory.verify("admin", "admin2024")

    assert identity is not None
    assert identity.role == "admin"
    assert directory.verify("admin", "editor2024") is None
    assert directory.verify("ADMIN", "admin2024") is None
    assert directory.verify("ghost", "admin2024") is None


def test_create_user_assigns_role_defaults(directory: UserDirectory, clock) -> None:
    created = directory.create_user(username="volunteer", password="long-password", role="editor", email="v@nss.edu")

    assert created.permissions == default_permissions("editor")
    assert created.created_at == clock.now.isoformat()
    assert created.is_active is True
    assert directory.get_user(created.id) == created
    assert directory.verify("volunteer", "long-password") == created


def test_create_user_ids_are_unique(directory: UserDirectory) -> None:
    ids = {directory.create_user(username=f"user{i}", password="long-password", role="viewer").id for i in range(5)}
    assert len(ids) == 5


def test_create_user_rejects_duplicates_and_unknown_roles(directory: UserDirectory) -> None:
    with pytest.raises(ConflictError):
        directory.create_user(username="editor", password="long-password", role="editor")
    with pytest.raises(UnknownRole):
        directory.create_user(username="fresh", password="long-password", role="owner")


def test_role_change_resets_permissions(directory: UserDirectory) -> None:
    editor = directory.find_by_username("editor")
    assert editor is not None
    custom = [Permission(resource="gallery", actions=["read"])]
    directory.update_user(editor.id, permissions=custom)
    assert directory.get_user(editor.id).permissions == custom

    promoted = directory.update_user(editor.id, role=Role.ADMIN)

    assert promoted.role == "admin"
    assert promoted.permissions == default_permissions("admin")


def test_update_password(directory: UserDirectory) -> None:
    viewer = directory.find_by_username("viewer")
    assert viewer is not None

    directory.update_user(viewer.id, password="new-password")

    assert directory.verify("viewer", "viewer2024") is None
    assert directory.verify("viewer", "new-password") is not None


def test_record_login_updates_last_login(directory: UserDirectory) -> None:
    viewer = directory.find_by_username("viewer")
    assert viewer is not None

    directory.record_login(viewer.model_copy(update={"last_login": "2024-05-01T10:00:00+00:00"}))

    assert directory.get_user(viewer.id).last_login == "2024-05-01T10:00:00+00:00"


def test_delete_user(directory: UserDirectory) -> None:
    viewer = directory.find_by_username("viewer")
    assert viewer is not None

    directory.delete_user(viewer.id)

    assert directory.find_by_username("viewer") is None
    with pytest.raises(NotFoundError):
        directory.get_user(viewer.id)
    with pytest.raises(NotFoundError):
        directory.delete_user(viewer.id)


def test_malformed_user_records_are_skipped(store: MemoryStore, directory: UserDirectory) -> None:
    records = store.read("users", [])
    records.append({"id": "broken", "username": ""})
    records.append("not a record")
    store.write("users", records)

    assert len(directory.list_users()) == 4


def test_is_bootstrap(directory: UserDirectory) -> None:
    root = directory.find_by_username(BOOTSTRAP_USERNAME)
    admin = directory.find_by_username("admin")
    assert root is not None and admin is not None

    assert directory.is_bootstrap(root) is True
    assert directory.is_bootstrap(admin) is False
    assert UserDirectory(MemoryStore()).is_bootstrap(root) is False


def test_bootstrap_seed_from_settings() -> None:
    without_password = Settings(secret_key="x", bootstrap_username="chief")
    with_password = Settings(secret_key="x", bootstrap_username="chief", bootstrap_password="pw", bootstrap_email="c@nss.edu")

    assert bootstrap_seed(without_password) is None
    assert bootstrap_seed(with_password) == AccountSeed("chief", "pw", Role.SUPER_ADMIN, "c@nss.edu")
