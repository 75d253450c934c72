"""
Tests for the restaurant (customer) and rider reports.

Expected values are computed by hand from the seed_data fixture; both store
modes must produce them to the cent.
"""

import pytest

from rest_api.services.domain import MongoOrderStore, ReportService, SqlOrderStore
from shared.utils.exceptions import ValidationError


class TestCustomerReport:
    """Tests for GET /api/student1/{mode}/report."""

    def test_summary(self, store):
        summary = ReportService(store).customer_report("Plachutta").summary

        assert summary.total_orders == 3
        assert summary.total_revenue == "47.40"
        assert summary.avg_order_value == "15.80"
        assert summary.paid_orders == 2
        assert summary.unpaid_orders == 1
        assert summary.payment_rate == "66.7"

    def test_by_status_sorted_by_status(self, store):
        rows = ReportService(store).customer_report("Plachutta").breakdown.by_status

        assert [(r.status, r.orders, r.revenue) for r in rows] == [
            ("completed", 1, "21.90"),
            ("created", 1, "6.20"),
            ("preparing", 1, "19.30"),
        ]

    def test_by_day_newest_first(self, store):
        rows = ReportService(store).customer_report("Plachutta").breakdown.by_day

        assert [(r.date, r.orders, r.revenue) for r in rows] == [
            ("2026-01-12", 1, "21.90"),
            ("2026-01-10", 2, "25.50"),
        ]

    def test_by_payment_method(self, store):
        """Unpaid orders do not appear; ties on count sort by method."""
        rows = ReportService(store).customer_report("Plachutta").breakdown.by_payment_method

        assert [(r.method, r.payments, r.amount) for r in rows] == [
            ("card", 1, "19.30"),
            ("cash", 1, "21.90"),
        ]

    def test_unpaid_payment_document_is_not_paid(self, mongo_store, mongo_db, migrated):
        """Null payment and a payment with null paidAt both count as unpaid."""
        mongo_db["orders"].update_one(
            {"orderId": migrated.orders["o2"]},
            {"$set": {"payment": {"paymentId": 5, "amount": 6.2, "method": "card", "paidAt": None}}},
        )

        report = ReportService(mongo_store).customer_report("Plachutta")

        assert report.summary.paid_orders == 2
        assert [r.payments for r in report.breakdown.by_payment_method] == [1, 1]

    def test_top_items_tie_break_by_name(self, store, migrated):
        """Every item sold 3 units, so the order falls back to the name."""
        rows = ReportService(store).customer_report("Plachutta").breakdown.top_items

        assert [(r.name, r.quantity, r.revenue) for r in rows] == [
            ("Apfelstrudel", 3, "18.60"),
            ("Cola", 3, "0.30"),
            ("Tafelspitz", 3, "28.50"),
        ]
        assert rows[0].menu_item_id == migrated.menu["Apfelstrudel"]

    def test_window_is_inclusive(self, store):
        report = ReportService(store).customer_report("Plachutta", from_="2026-01-11")

        assert report.summary.total_orders == 1
        assert report.summary.total_revenue == "21.90"
        assert report.filters.from_ is not None

    def test_window_upper_bound(self, store):
        """`to` includes an order created exactly at the bound."""
        report = ReportService(store).customer_report(
            "Plachutta", from_="2026-01-10T00:00:00", to="2026-01-10T12:00:00"
        )

        assert report.summary.total_orders == 1
        assert report.summary.total_revenue == "19.30"

    def test_unknown_restaurant_is_empty(self, store):
        """An unknown name yields zeroes, not a 404."""
        report = ReportService(store).customer_report("Nowhere")

        assert report.summary.total_orders == 0
        assert report.summary.total_revenue == "0.00"
        assert report.summary.avg_order_value == "0.00"
        assert report.summary.payment_rate == "0.0"
        assert report.breakdown.top_items == []

    def test_restaurant_name_required(self, store):
        with pytest.raises(ValidationError):
            ReportService(store).customer_report("  ")

    def test_bad_date(self, store):
        with pytest.raises(ValidationError):
            ReportService(store).customer_report("Plachutta", from_="yesterday")


class TestRiderReport:
    """Tests for GET /api/student2/{mode}/report."""

    def test_summary(self, store):
        summary = ReportService(store).rider_report("rider1@example.com").summary

        assert summary.total_deliveries == 2
        assert summary.total_revenue == "41.20"
        assert summary.avg_order_value == "20.60"
        assert summary.by_status.picked_up == 1
        assert summary.by_status.delivered == 1
        assert summary.by_status.assigned == 0
        assert summary.completion_rate == "50.0"

    def test_breakdown(self, store):
        breakdown = ReportService(store).rider_report("rider1@example.com").breakdown

        assert [(r.date, r.deliveries) for r in breakdown.by_day] == [
            ("2026-01-12", 1),
            ("2026-01-10", 1),
        ]
        assert [(r.restaurant, r.count) for r in breakdown.by_restaurant] == [("Plachutta", 2)]

    def test_delivery_status_filter(self, store):
        report = ReportService(store).rider_report("rider1@example.com", delivery_status="delivered")

        assert report.summary.total_deliveries == 1
        assert report.summary.total_revenue == "19.30"
        assert report.summary.completion_rate == "100.0"
        assert report.filters.delivery_status == "delivered"

    def test_unknown_rider_is_empty(self, store):
        summary = ReportService(store).rider_report("ghost@example.com").summary

        assert summary.total_deliveries == 0
        assert summary.completion_rate == "0.0"

    def test_invalid_delivery_status(self, store):
        with pytest.raises(ValidationError):
            ReportService(store).rider_report("rider1@example.com", delivery_status="lost")


class TestModeParity:
    """The same data gives identical reports in both modes."""

    def test_customer_reports_match(self, db_session, mongo_db, migrated):
        sql = ReportService(SqlOrderStore(db_session)).customer_report("Plachutta")
        mongo = ReportService(MongoOrderStore(mongo_db)).customer_report("Plachutta")

        assert sql.model_dump(exclude={"mode"}) == mongo.model_dump(exclude={"mode"})
        assert (sql.mode, mongo.mode) == ("sql", "mongo")

    def test_rider_reports_match(self, db_session, mongo_db, migrated):
        sql = ReportService(SqlOrderStore(db_session)).rider_report("rider2@example.com")
        mongo = ReportService(MongoOrderStore(mongo_db)).rider_report("rider2@example.com")

        assert sql.model_dump(exclude={"mode"}) == mongo.model_dump(exclude={"mode"})
