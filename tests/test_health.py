"""
Tests for the health endpoint and active mode detection.
"""

import time

from rest_api.routers.public.health import detect_active_mode
from shared.utils.health import (
    HealthCheckResult,
    HealthStatus,
    overall_status,
    sync_health_check_with_timeout,
)


class TestHealthEndpoint:
    """Tests for GET /api/health."""

    def test_health_returns_ok(self, client):
        response = client.get("/api/health")

        assert response.status_code == 200
        data = response.json()
        assert data["ok"] is True
        assert data["status"] == "healthy"
        assert data["sql"]["status"] == "healthy"
        assert data["mongo"]["status"] == "healthy"

    def test_active_mode_follows_migration_and_reset(self, client):
        """sql until migrated, mongo after, and sql again after a reset."""
        assert client.get("/api/health").json()["activeMode"] == "sql"

        assert client.post("/api/migrate_to_mongo").status_code == 200
        data = client.get("/api/health").json()
        assert data["activeMode"] == "mongo"
        assert data["mongo"]["details"]["migrated"] is True
        assert data["mongo"]["details"]["orders"] == 4

        assert client.post("/api/import_reset").status_code == 200
        assert client.get("/api/health").json()["activeMode"] == "sql"

    def test_unreachable_store_is_503(self, client, monkeypatch):
        def broken(command):
            raise RuntimeError("no server")

        monkeypatch.setattr(client.app.state.mongo_db, "command", broken)
        response = client.get("/api/health")

        assert response.status_code == 503
        data = response.json()
        assert data["ok"] is False
        assert data["status"] == "degraded"
        assert data["activeMode"] == "sql"


class TestDetectActiveMode:
    """Tests for detect_active_mode."""

    def test_marker_without_orders_is_sql(self):
        assert detect_active_mode({"migrated": True, "orders": 0}) == "sql"

    def test_orders_without_marker_is_sql(self):
        assert detect_active_mode({"migrated": False, "orders": 12}) == "sql"

    def test_marker_and_orders_is_mongo(self):
        assert detect_active_mode({"migrated": True, "orders": 12}) == "mongo"


class TestHealthChecks:
    """Tests for the check decorator and status rollup."""

    def test_failing_check_is_unhealthy(self):
        @sync_health_check_with_timeout(timeout=1.0, component="sql")
        def check():
            raise RuntimeError("refused")

        result = check()
        assert result.status == HealthStatus.UNHEALTHY
        assert result.error == "refused"
        assert result.to_dict()["component"] == "sql"

    def test_slow_check_times_out(self):
        @sync_health_check_with_timeout(timeout=0.05)
        def check_mongo_health():
            time.sleep(0.5)

        result = check_mongo_health()
        assert result.component == "mongo"
        assert result.error.startswith("timeout")

    def test_overall_status(self):
        up = HealthCheckResult(status=HealthStatus.HEALTHY, component="sql")
        down = HealthCheckResult(status=HealthStatus.UNHEALTHY, component="mongo")

        assert overall_status([up, up]) == HealthStatus.HEALTHY
        assert overall_status([up, down]) == HealthStatus.DEGRADED
        assert overall_status([down, down]) == HealthStatus.UNHEALTHY
