"""
Tests for the relational to document store migration.
"""

from rest_api.services.migration import migrate_sql_to_mongo, read_sql_snapshot
from shared.config.constants import Collections, MIGRATION_MARKER_ID


def _documents(mongo_db, name, sort_key):
    return list(mongo_db[name].find({}, {"_id": 0}).sort(sort_key, 1))


class TestMigrateSqlToMongo:
    """Tests for migrate_sql_to_mongo."""

    def test_counts(self, db_session, mongo_db, seed_data):
        counts = migrate_sql_to_mongo(db_session, mongo_db)

        assert counts == {"restaurants": 2, "people": 4, "orders": 4}
        assert mongo_db[Collections.ORDERS].count_documents({}) == 4

    def test_order_document_shape(self, db_session, mongo_db, seed_data):
        """Orders embed restaurant, customer, lines, payment and delivery."""
        migrate_sql_to_mongo(db_session, mongo_db)
        doc = mongo_db[Collections.ORDERS].find_one({"orderId": seed_data.orders["o1"]})

        assert doc["status"] == "preparing"
        assert doc["totalAmount"] == 19.3
        assert doc["restaurant"]["name"] == "Plachutta"
        assert doc["customer"]["email"] == "customer1@example.com"
        assert [(i["name"], i["quantity"], i["unitPrice"]) for i in doc["orderItems"]] == [
            ("Tafelspitz", 2, 9.5),
            ("Cola", 3, 0.1),
        ]
        assert doc["payment"]["method"] == "card"
        assert doc["delivery"]["deliveryStatus"] == "delivered"
        assert doc["delivery"]["rider"]["email"] == "rider1@example.com"
        assert doc["delivery"]["rider"]["vehicleType"] == "bike"

    def test_unpaid_order_and_pending_delivery(self, db_session, mongo_db, seed_data):
        migrate_sql_to_mongo(db_session, mongo_db)
        doc = mongo_db[Collections.ORDERS].find_one({"orderId": seed_data.orders["o2"]})

        assert doc["payment"] is None
        assert doc["delivery"]["deliveryStatus"] == "created"
        assert doc["delivery"]["rider"] is None
        assert doc["delivery"]["assignedAt"] is None

    def test_people_are_typed(self, db_session, mongo_db, seed_data):
        migrate_sql_to_mongo(db_session, mongo_db)
        people = {p["email"]: p for p in _documents(mongo_db, Collections.PEOPLE, "email")}

        assert people["customer1@example.com"]["type"] == "customer"
        assert people["customer1@example.com"]["customer"]["preferredPaymentMethod"] == "card"
        assert people["rider2@example.com"]["type"] == "rider"
        assert people["rider2@example.com"]["rider"]["vehicleType"] == "car"
        assert people["rider2@example.com"]["customer"] is None

    def test_idempotent(self, db_session, mongo_db, seed_data):
        """A second run replaces rather than duplicates."""
        keys = {
            Collections.ORDERS: "orderId",
            Collections.PEOPLE: "personId",
            Collections.RESTAURANTS: "restaurantId",
        }
        migrate_sql_to_mongo(db_session, mongo_db)
        first = {name: _documents(mongo_db, name, key) for name, key in keys.items()}

        migrate_sql_to_mongo(db_session, mongo_db)

        for name, key in keys.items():
            assert _documents(mongo_db, name, key) == first[name]

    def test_writes_marker(self, db_session, mongo_db, seed_data):
        migrate_sql_to_mongo(db_session, mongo_db)
        marker = mongo_db[Collections.META].find_one({"_id": MIGRATION_MARKER_ID})

        assert marker["source"] == "mariadb"
        assert marker["migrated"]["orders"] == 4
        assert marker["lastMigrationAt"] is not None

    def test_empty_relational_store(self, db_session, mongo_db):
        """Nothing to copy still clears old documents and sets the marker."""
        mongo_db[Collections.ORDERS].insert_one({"orderId": 77})

        counts = migrate_sql_to_mongo(db_session, mongo_db)

        assert counts == {"restaurants": 0, "people": 0, "orders": 0}
        assert mongo_db[Collections.ORDERS].count_documents({}) == 0
        assert mongo_db[Collections.META].count_documents({"_id": MIGRATION_MARKER_ID}) == 1


class TestReadSqlSnapshot:
    """Tests for read_sql_snapshot."""

    def test_ordered_by_id(self, db_session, seed_data):
        snapshot = read_sql_snapshot(db_session)

        assert [o.order_id for o in snapshot.orders] == sorted(seed_data.orders.values())
        by_id = sorted(seed_data.people, key=seed_data.people.get)
        assert [p.email for p in snapshot.people] == by_id

    def test_totals_in_cents(self, db_session, seed_data):
        snapshot = read_sql_snapshot(db_session)
        totals = {o.order_id: o.total_cents for o in snapshot.orders}

        assert totals[seed_data.orders["o4"]] == 3860
