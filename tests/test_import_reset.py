"""
Tests for the relational reset and the demo data generator.
"""

import random
from datetime import datetime

import pytest
from pymongo.errors import PyMongoError
from sqlalchemy import func, select

from rest_api.models import Delivery, MenuItem, Order, Payment, Person, Restaurant
from rest_api.services import import_reset as import_reset_module
from rest_api.services.import_reset import generate_demo_data, import_reset
from rest_api.services.migration import migrate_sql_to_mongo
from shared.config.constants import Collections, MIGRATION_MARKER_ID
from shared.infrastructure.db import transaction
from shared.utils.exceptions import InternalError
from shared.utils.money import to_cents


EXPECTED_COUNTS = {
    "restaurants": 10,
    "categories": 6,
    "menuItems": 60,
    "customers": 20,
    "riders": 10,
    "orders": 30,
    "payments": 30,
}


def _count(db, model) -> int:
    return db.scalar(select(func.count()).select_from(model))


class TestImportReset:
    """Tests for import_reset."""

    def test_inserted_counts(self, db_session, mongo_db):
        inserted = import_reset(db_session, mongo_db, seed=7)

        for key, expected in EXPECTED_COUNTS.items():
            assert inserted[key] == expected
        assert inserted["orderItems"] >= 30
        assert 0 <= inserted["deliveries"] <= 30
        assert _count(db_session, Order) == 30
        assert _count(db_session, Payment) == 30
        assert _count(db_session, Person) == 30

    def test_replaces_existing_rows(self, db_session, mongo_db, seed_data):
        """The fixture dataset is replaced, not extended."""
        import_reset(db_session, mongo_db, seed=7)

        assert _count(db_session, Restaurant) == 10
        assert db_session.scalar(
            select(func.count()).select_from(Person).where(Person.email == "rider1@example.com")
        ) == 1

    def test_same_seed_same_data(self, db_session, mongo_db):
        def snapshot():
            return db_session.execute(
                select(MenuItem.name, MenuItem.price).order_by(MenuItem.menu_item_id)
            ).all()

        import_reset(db_session, mongo_db, seed=42)
        first = snapshot()
        import_reset(db_session, mongo_db, seed=42)

        assert snapshot() == first

    def test_clears_document_store(self, db_session, mongo_db, seed_data):
        """A reset must not leave a stale migration behind."""
        migrate_sql_to_mongo(db_session, mongo_db)

        import_reset(db_session, mongo_db, seed=1)

        for name in Collections.WORKING:
            assert mongo_db[name].count_documents({}) == 0
        assert mongo_db[Collections.META].find_one({"_id": MIGRATION_MARKER_ID}) is None

    def test_document_store_failure(self, db_session, mongo_db, monkeypatch):
        def broken(db):
            raise PyMongoError("connection refused")

        monkeypatch.setattr(import_reset_module, "clear_working_collections", broken)

        with pytest.raises(InternalError) as exc_info:
            import_reset(db_session, mongo_db, seed=1)

        assert "relational reset succeeded" in exc_info.value.detail
        assert _count(db_session, Order) == 30


class TestGenerateDemoData:
    """Invariants of the generated dataset."""

    @pytest.fixture
    def generated(self, db_session):
        with transaction(db_session):
            generate_demo_data(db_session, random.Random(3), now=datetime(2026, 2, 1, 12, 0))
        return db_session

    def test_created_deliveries_have_no_rider(self, generated):
        for delivery in generated.scalars(select(Delivery)):
            if delivery.delivery_status == "created":
                assert delivery.rider_id is None
                assert delivery.assigned_at is None
            else:
                assert delivery.rider_id is not None
                assert delivery.assigned_at is not None

    def test_totals_match_lines(self, generated):
        for order in generated.scalars(select(Order)):
            lines = sum(item.quantity * to_cents(item.unit_price) for item in order.items)
            assert to_cents(order.total_amount) == lines
            assert to_cents(order.payment.amount) == lines

    def test_menu_names_unique_per_restaurant(self, generated):
        for restaurant in generated.scalars(select(Restaurant)):
            names = [item.name for item in restaurant.menu_items]
            assert len(names) == len(set(names)) == 6

    def test_orders_within_window(self, generated):
        for order in generated.scalars(select(Order)):
            assert datetime(2026, 1, 18, 12, 0) <= order.created_at <= datetime(2026, 2, 1, 12, 0)
