"""Tests for API key enforcement on curated and search routes."""

from __future__ import annotations

from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from hotel_curator.api.main import app
from hotel_curator.utils.config import get_settings


@pytest.fixture(name="client")
def client_fixture(monkeypatch: pytest.MonkeyPatch) -> Iterator[TestClient]:
    """Provide a FastAPI test client with API keys configured."""

    monkeypatch.setenv("CURATOR_API_KEYS", '["valid-key", "another-key"]')
    get_settings(reload=True)

    with TestClient(app) as test_client:
        yield test_client


def test_routes_accept_valid_api_key(client: TestClient) -> None:
    response = client.get("/api/v1/hotels/curated/debug", headers={"X-API-Key": "another-key"})

    assert response.status_code == 200
    assert response.json()["curated_count"] == 0


def test_routes_reject_missing_api_key(client: TestClient) -> None:
    response = client.get("/api/v1/hotels/curated")

    assert response.status_code == 401
    assert response.json() == {"detail": "Missing API key."}


def test_routes_reject_invalid_api_key(client: TestClient) -> None:
    response = client.post(
        "/api/v1/hotels/search",
        headers={"X-API-Key": "not-correct"},
        json={},
    )

    assert response.status_code == 403
    assert response.json() == {"detail": "Invalid API key."}


def test_routes_reject_when_no_keys_configured(
    client: TestClient,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("CURATOR_API_KEYS", "[]")
    get_settings(reload=True)

    response = client.post("/api/v1/hotels/curated/seed", headers={"X-API-Key": "valid-key"})

    assert response.status_code == 401
    assert response.json() == {"detail": "API authentication is not configured."}


def test_health_needs_no_key(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["service"] == "hotel_curator"
    assert body["database"] == {"status": "ok"}


def test_metrics_exposes_curated_gauge(client: TestClient) -> None:
    response = client.get("/metrics")

    assert response.status_code == 200
    assert "curated_hotels 0.0" in response.text
    assert "vendor_requests_total" in response.text


def test_correlation_id_is_echoed(client: TestClient) -> None:
    response = client.get("/health", headers={"X-Correlation-ID": "corr-123"})

    assert response.headers["X-Correlation-ID"] == "corr-123"


def test_correlation_id_is_generated_when_absent(client: TestClient) -> None:
    response = client.get("/health")

    assert len(response.headers["X-Correlation-ID"]) == 36
