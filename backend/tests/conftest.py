"""Shared test fixtures and configuration."""
import os
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterator

import pytest

# Required by nss_admin.main, which builds its module-level app on import
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("ALLOWED_ORIGINS", "http://localhost:3000")
os.environ.setdefault("STORAGE_BACKEND", "memory")

from fastapi.testclient import TestClient  # noqa: E402

from nss_admin.auth import passwords  # noqa: E402
from nss_admin.auth.credentials import AccountSeed, UserDirectory, seed_accounts  # noqa: E402
from nss_admin.auth.identity import Identity  # noqa: E402
from nss_admin.auth.roles import Role, default_permissions  # noqa: E402
from nss_admin.config import Settings  # noqa: E402
from nss_admin.main import create_app  # noqa: E402
from nss_admin.storage import MemoryStore  # noqa: E402

BOOTSTRAP_USERNAME = "root"
BOOTSTRAP_PASSWORD = "root-password"


class FixedClock:
    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture(autouse=True)
def fast_password_hashing(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(passwords, "PBKDF2_ITERATIONS", 1_000)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(datetime(2024, 3, 1, 9, 30, tzinfo=timezone.utc))


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def directory(store: MemoryStore, clock: FixedClock) -> UserDirectory:
    """Directory holding the bootstrap super admin and the demo accounts."""
    users = UserDirectory(store, bootstrap_username=BOOTSTRAP_USERNAME, clock=clock)
    seed_accounts(
        users,
        bootstrap=AccountSeed(BOOTSTRAP_USERNAME, BOOTSTRAP_PASSWORD, Role.SUPER_ADMIN),
        include_demo=True,
    )
    return users


@pytest.fixture
def make_identity() -> Callable[..., Identity]:
    def factory(role: str, **overrides: object) -> Identity:
        data: dict = {
            "id": f"id-{role}",
            "username": f"user-{role}",
            "role": role,
            "permissions": default_permissions(role),
        }
        data.update(overrides)
        return Identity(**data)

    return factory


@pytest.fixture
def app_settings() -> Settings:
    return Settings(
        secret_key="test-secret-key",
        allowed_origins=["http://localhost:3000"],
        storage_backend="memory",
        bootstrap_username=BOOTSTRAP_USERNAME,
        bootstrap_password=BOOTSTRAP_PASSWORD,
        seed_demo_accounts=True,
        login_max_attempts=3,
        login_window_seconds=60,
    )


@pytest.fixture
def client(app_settings: Settings, store: MemoryStore) -> Iterator[TestClient]:
    app = create_app(app_settings, store)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def login(client: TestClient) -> Callable[[str, str], dict[str, str]]:
    """Log in through the API and return the Authorization header."""

    def do_login(username: str, password: str) -> dict[str, str]:
        response = client.post("/auth/login", json={"username": username, "password": password})
        assert response.status_code == 200, response.text
        return {"Authorization": f"Bearer {response.json()['accessToken']}"}

    return do_login
