"""Tests for the Hookrelay trigger API."""

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from hookrelay.api.app import register_exception_handlers
from hookrelay.api.auth import is_loopback, secret_matches
from hookrelay.api.router import router
from hookrelay.config import Settings
from hookrelay.exceptions import StorageError
from hookrelay.models import BatchSummary, DeliveredOutcome, SkippedOutcome
from hookrelay.service import HookrelayService

AUTH = {"Authorization": "Bearer s3cret"}


def build_app(service) -> FastAPI:
    app = FastAPI()
    register_exception_handlers(app)
    app.include_router(router)
    app.state.service = service
    return app


@pytest.fixture
def mock_service():
    """Create a mock HookrelayService."""
    service = MagicMock(spec=HookrelayService)
    service.run_due_deliveries = AsyncMock(
        return_value=BatchSummary(processed=3, delivered=1, retrying=1, failed=1)
    )
    service.process_delivery = AsyncMock()
    service.settings = Settings(env="test", cron_secret="s3cret", allow_loopback_cron=False)
    return service


@pytest.fixture
def client(mock_service):
    """Create a test client."""
    return TestClient(build_app(mock_service))


class TestAuthHelpers:
    """Tests for auth helper functions."""

    @pytest.mark.parametrize("host", ["127.0.0.1", "127.0.0.53", "::1"])
    def test_loopback_hosts(self, host: str):
        assert is_loopback(host)

    @pytest.mark.parametrize("host", ["10.0.0.5", "203.0.113.9", "testclient", "", None])
    def test_other_hosts(self, host):
        assert not is_loopback(host)

    def test_secret_matches(self):
        assert secret_matches("abc", "abc")
        assert not secret_matches("abd", "abc")
        assert not secret_matches("", "abc")


class TestHealthEndpoint:
    """Tests for /health endpoint."""

    def test_health_when_service_initialized(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["storage_connected"] is True
        assert data["version"] == "0.1.0"

    def test_health_when_service_not_initialized(self):
        test_client = TestClient(build_app(None))

        response = test_client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "unhealthy"


class TestBatchEndpoint:
    """Tests for /api/cron/webhooks."""

    @pytest.mark.parametrize("method", ["GET", "POST"])
    def test_runs_batch(self, client, mock_service, method: str):
        response = client.request(method, "/api/cron/webhooks", headers=AUTH)

        assert response.status_code == 200
        assert response.json() == {
            "processed": 3,
            "delivered": 1,
            "retrying": 1,
            "failed": 1,
            "errored": 0,
            "skipped": 0,
        }
        mock_service.run_due_deliveries.assert_awaited_once()

    def test_missing_credentials(self, client, mock_service):
        response = client.get("/api/cron/webhooks")

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "authentication_error"
        mock_service.run_due_deliveries.assert_not_awaited()

    def test_wrong_secret(self, client, mock_service):
        response = client.get("/api/cron/webhooks", headers={"Authorization": "Bearer nope"})

        assert response.status_code == 401
        mock_service.run_due_deliveries.assert_not_awaited()

    def test_no_secret_configured_rejects_bearer(self, mock_service):
        mock_service.settings = Settings(env="test", cron_secret=None, allow_loopback_cron=False)
        test_client = TestClient(build_app(mock_service))

        response = test_client.get("/api/cron/webhooks", headers=AUTH)

        assert response.status_code == 401

    def test_selection_failure_is_500(self, client, mock_service):
        mock_service.run_due_deliveries.side_effect = StorageError("connection refused")

        response = client.post("/api/cron/webhooks", headers=AUTH)

        assert response.status_code == 500
        assert response.json() == {
            "error": {"code": "storage_error", "message": "connection refused"}
        }

    def test_unexpected_failure_is_500(self, client, mock_service):
        mock_service.run_due_deliveries.side_effect = RuntimeError("boom")

        response = client.post("/api/cron/webhooks", headers=AUTH)

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "hookrelay_error"

    def test_service_unavailable(self):
        test_client = TestClient(build_app(None))

        response = test_client.get("/api/cron/webhooks", headers=AUTH)

        assert response.status_code == 503

    @pytest.mark.asyncio
    async def test_loopback_allowed_without_secret(self, mock_service):
        mock_service.settings = Settings(env="test", cron_secret=None, allow_loopback_cron=True)
        transport = httpx.ASGITransport(app=build_app(mock_service), client=("127.0.0.1", 40000))

        async with httpx.AsyncClient(transport=transport, base_url="http://relay") as ac:
            response = await ac.get("/api/cron/webhooks")

        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_loopback_needs_secret_once_configured(self, mock_service):
        mock_service.settings = Settings(env="test", cron_secret="s3cret", allow_loopback_cron=True)
        transport = httpx.ASGITransport(app=build_app(mock_service), client=("127.0.0.1", 40000))

        async with httpx.AsyncClient(transport=transport, base_url="http://relay") as ac:
            anonymous = await ac.get("/api/cron/webhooks")
            authorized = await ac.get("/api/cron/webhooks", headers=AUTH)

        assert anonymous.status_code == 401
        assert anonymous.json()["error"]["message"] == "Missing cron credentials"
        assert authorized.status_code == 200
        mock_service.run_due_deliveries.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_loopback_disabled(self, mock_service):
        transport = httpx.ASGITransport(app=build_app(mock_service), client=("127.0.0.1", 40000))

        async with httpx.AsyncClient(transport=transport, base_url="http://relay") as ac:
            response = await ac.get("/api/cron/webhooks")

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_remote_client_needs_secret(self, mock_service):
        mock_service.settings = Settings(env="test", cron_secret=None, allow_loopback_cron=True)
        transport = httpx.ASGITransport(app=build_app(mock_service), client=("203.0.113.9", 40000))

        async with httpx.AsyncClient(transport=transport, base_url="http://relay") as ac:
            response = await ac.get(
                "/api/cron/webhooks", headers={"X-Forwarded-For": "127.0.0.1"}
            )

        assert response.status_code == 401


class TestSingleDeliveryEndpoint:
    """Tests for /api/cron/webhooks/{delivery_id}."""

    def test_runs_one_delivery(self, client, mock_service):
        mock_service.process_delivery.return_value = DeliveredOutcome(
            delivery_id="dlv_1", attempts=2, response_code=204
        )

        response = client.post("/api/cron/webhooks/dlv_1", headers=AUTH)

        assert response.status_code == 200
        assert response.json()["outcome"] == {
            "kind": "delivered",
            "delivery_id": "dlv_1",
            "attempts": 2,
            "response_code": 204,
        }
        mock_service.process_delivery.assert_awaited_once_with("dlv_1")

    def test_terminal_delivery_reported(self, client, mock_service):
        mock_service.process_delivery.return_value = SkippedOutcome(
            delivery_id="dlv_1", reason="terminal"
        )

        response = client.post("/api/cron/webhooks/dlv_1", headers=AUTH)

        assert response.status_code == 200
        assert response.json()["outcome"]["reason"] == "terminal"

    def test_missing_delivery_is_404(self, client, mock_service):
        mock_service.process_delivery.return_value = SkippedOutcome(
            delivery_id="dlv_nope", reason="not_found"
        )

        response = client.post("/api/cron/webhooks/dlv_nope", headers=AUTH)

        assert response.status_code == 404
        error = response.json()["error"]
        assert error["code"] == "not_found"
        assert error["resource_id"] == "dlv_nope"

    def test_requires_auth(self, client, mock_service):
        response = client.post("/api/cron/webhooks/dlv_1")

        assert response.status_code == 401
        mock_service.process_delivery.assert_not_awaited()
