"""
Tests for request and job correlation.
"""

import logging

from shared.infrastructure.correlation import (
    CorrelationIdFilter,
    get_request_id,
    job_context,
    mode_from_path,
    store_mode_var,
)


class TestModeFromPath:
    def test_per_store_routes(self):
        assert mode_from_path("/api/student1/sql/orders") == "sql"
        assert mode_from_path("/api/student2/mongo/reports/rider/1") == "mongo"

    def test_other_routes_have_no_mode(self):
        assert mode_from_path("/api/health") == ""
        assert mode_from_path("/api/student1/redis/orders") == ""
        assert mode_from_path("/api/student1/sql") == ""


class TestJobContext:
    def test_binds_and_restores(self):
        assert get_request_id() == ""

        with job_context("migrate", mode="mongo") as job_id:
            assert job_id.startswith("migrate-")
            assert get_request_id() == job_id
            assert store_mode_var.get() == "mongo"

        assert get_request_id() == ""
        assert store_mode_var.get() == ""

    def test_filter_tags_records(self):
        record = logging.LogRecord("t", logging.INFO, __file__, 1, "msg", (), None)

        CorrelationIdFilter().filter(record)
        assert (record.request_id, record.store_mode) == ("-", "-")

        with job_context("reset") as job_id:
            CorrelationIdFilter().filter(record)
        assert record.request_id == job_id
        assert record.store_mode == "-"


class TestRequestCorrelation:
    def test_request_id_is_echoed(self, client):
        response = client.get("/api/health", headers={"X-Request-ID": "abc-123"})
        assert response.headers["X-Request-ID"] == "abc-123"

    def test_request_id_is_generated(self, client):
        assert client.get("/api/health").headers["X-Request-ID"]
