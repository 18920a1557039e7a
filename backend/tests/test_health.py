from typing import Any

from fastapi.testclient import TestClient

from nss_admin.config import Settings
from nss_admin.main import create_app
from nss_admin.storage import StorageError


class UnavailableStore:
    def read(self, key: str, fallback: Any) -> Any:
        raise StorageError("connection refused")

    def write(self, key: str, value: Any) -> None:
        raise StorageError("connection refused")

    def delete(self, key: str) -> None:
        raise StorageError("connection refused")


def test_health_reports_storage_outage(app_settings: Settings) -> None:
    client = TestClient(create_app(app_settings, UnavailableStore()))

    response = client.get("/health")

    assert response.status_code == 503
    assert response.json() == {"status": "error"}


def test_storage_errors_map_to_503(app_settings: Settings) -> None:
    client = TestClient(create_app(app_settings, UnavailableStore()))

    response = client.get("/api/activities")

    assert response.status_code == 503
    assert response.json()["error"]["code"] == "STORAGE_UNAVAILABLE"


def test_cors_allows_configured_origin(client: TestClient) -> None:
    response = client.options(
        "/api/activities",
        headers={"Origin": "http://localhost:3000", "Access-Control-Request-Method": "POST"},
    )

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "http://localhost:3000"


def test_health(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
