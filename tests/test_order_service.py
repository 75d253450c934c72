"""
Tests for the order lifecycle: place order, pay, assign delivery, listings.

Most tests run once per store mode through the parametrized `store` fixture.
"""

import mongomock
import pytest
from pymongo.errors import AutoReconnect

from rest_api.services.domain import MongoOrderStore, OrderService
from shared.utils.exceptions import (
    AlreadyPaidError,
    AmbiguousMenuItemError,
    InternalError,
    NotFoundError,
    OrderNotFoundError,
    ValidationError,
)
from shared.utils.schemas import AssignDeliveryRequest, PayRequest, PlaceOrderRequest


def place(service, seed, line, *lines, customer="customer1@example.com", restaurant="Plachutta"):
    body = PlaceOrderRequest(
        customer_email=customer,
        restaurant_name=restaurant,
        items=[line(seed, *args) for args in lines],
    )
    return service.place_order(body)


class TestPlaceOrder:
    """Tests for order placement."""

    def test_total_is_exact_in_cents(self, store, migrated, line):
        """3 x 0.10 is 0.30, not 0.30000000000000004."""
        response = place(OrderService(store), migrated, line, ("Cola", 3, "0.10"))

        assert response.order.total_amount == "0.30"
        assert response.order.order_items[0].unit_price == "0.10"

    def test_new_order_is_created_with_snapshots(self, store, migrated, line):
        """A placed order starts in `created` and carries customer and restaurant."""
        response = place(
            OrderService(store), migrated, line,
            ("Tafelspitz", 2, "9.50"), ("Apfelstrudel", 1, "6.20"),
        )
        order = response.order

        assert response.ok is True
        assert order.status == "created"
        assert order.total_amount == "25.20"
        assert order.restaurant.name == "Plachutta"
        assert order.customer.email == "customer1@example.com"
        assert [item.name for item in order.order_items] == ["Tafelspitz", "Apfelstrudel"]
        assert order.created_at.microsecond == 0

    def test_order_ids_continue_after_existing(self, store, migrated, line):
        """New ids follow the highest existing one in both modes."""
        response = place(OrderService(store), migrated, line, ("Cola", 1, "0.10"))

        assert response.order.order_id == max(migrated.orders.values()) + 1

    def test_unknown_customer(self, store, migrated, line):
        """An unknown customer email is a 404."""
        with pytest.raises(NotFoundError) as exc_info:
            place(OrderService(store), migrated, line, ("Cola", 1, "0.10"), customer="ghost@example.com")

        assert exc_info.value.status_code == 404

    def test_rider_is_not_a_customer(self, store, migrated, line):
        """A rider email cannot place orders."""
        with pytest.raises(NotFoundError):
            place(OrderService(store), migrated, line, ("Cola", 1, "0.10"), customer="rider1@example.com")

    def test_unknown_restaurant(self, store, migrated, line):
        with pytest.raises(NotFoundError):
            place(OrderService(store), migrated, line, ("Cola", 1, "0.10"), restaurant="Nowhere")

    def test_blank_customer_email(self, store):
        """Whitespace-only identifiers are rejected before any lookup."""
        body = PlaceOrderRequest(
            customer_email="   ",
            restaurant_name="Plachutta",
            items=[{"menuItemName": "Cola", "quantity": 1, "unitPrice": "0.10"}],
        )
        with pytest.raises(ValidationError):
            OrderService(store).place_order(body)


class TestResolveLinesSql:
    """Menu resolution in the relational store."""

    def test_resolves_by_name_with_menu_price(self, sql_store):
        """The menu price wins over a caller supplied unitPrice."""
        body = PlaceOrderRequest(
            customer_email="customer1@example.com",
            restaurant_name="Plachutta",
            items=[{"menuItemName": "Tafelspitz", "quantity": 2, "unitPrice": "1.00"}],
        )
        order = OrderService(sql_store).place_order(body).order

        assert order.total_amount == "19.00"
        assert order.order_items[0].unit_price == "9.50"

    def test_ambiguous_name(self, sql_store):
        """Two menu rows named Melange make a name lookup ambiguous."""
        body = PlaceOrderRequest(
            customer_email="customer2@example.com",
            restaurant_name="Figlmueller",
            items=[{"menuItemName": "Melange", "quantity": 1}],
        )
        with pytest.raises(AmbiguousMenuItemError) as exc_info:
            OrderService(sql_store).place_order(body)

        assert exc_info.value.status_code == 400

    def test_item_of_another_restaurant(self, sql_store, migrated):
        """A menuItemId must belong to the ordered restaurant."""
        body = PlaceOrderRequest(
            customer_email="customer1@example.com",
            restaurant_name="Figlmueller",
            items=[{"menuItemId": migrated.menu["Tafelspitz"], "quantity": 1}],
        )
        with pytest.raises(NotFoundError):
            OrderService(sql_store).place_order(body)

    def test_line_without_reference(self, sql_store):
        body = PlaceOrderRequest(
            customer_email="customer1@example.com",
            restaurant_name="Plachutta",
            items=[{"quantity": 1}],
        )
        with pytest.raises(ValidationError, match=r"items\[0\]"):
            OrderService(sql_store).place_order(body)


class TestResolveLinesMongo:
    """The document store trusts the caller's name and unitPrice."""

    def test_requires_unit_price(self, mongo_store):
        body = PlaceOrderRequest(
            customer_email="customer1@example.com",
            restaurant_name="Plachutta",
            items=[{"menuItemName": "Tafelspitz", "quantity": 1}],
        )
        with pytest.raises(ValidationError):
            OrderService(mongo_store).place_order(body)

    def test_retries_taken_order_id(self, mongo_store, migrated, line, monkeypatch):
        """A DuplicateKeyError on orderId triggers a fresh allocation."""
        taken = migrated.orders["o1"]
        allocate = MongoOrderStore._next_order_id
        calls = []

        def flaky(self):
            calls.append(1)
            return taken if len(calls) == 1 else allocate(self)

        monkeypatch.setattr(MongoOrderStore, "_next_order_id", flaky)
        response = place(OrderService(mongo_store), migrated, line, ("Cola", 1, "0.10"))

        assert len(calls) == 2
        assert response.order.order_id == max(migrated.orders.values()) + 1

    def test_gives_up_after_repeated_collisions(self, mongo_store, migrated, line, monkeypatch):
        taken = migrated.orders["o1"]
        monkeypatch.setattr(MongoOrderStore, "_next_order_id", lambda self: taken)

        with pytest.raises(InternalError) as exc_info:
            place(OrderService(mongo_store), migrated, line, ("Cola", 1, "0.10"))

        assert exc_info.value.status_code == 500


class TestPay:
    """Tests for recording payments."""

    def test_pay_moves_created_to_preparing(self, store, migrated, line):
        service = OrderService(store)
        order = place(service, migrated, line, ("Tafelspitz", 2, "9.50")).order

        response = service.pay(PayRequest(order_id=order.order_id, payment_method="card"))

        assert response.status == "preparing"
        assert response.payment.amount == "19.00"
        assert response.payment.method == "card"
        assert response.payment.paid_at is not None

    def test_second_payment_conflicts(self, store, migrated, line):
        """Paying twice is a 409 and the first paidAt survives."""
        service = OrderService(store)
        order = place(service, migrated, line, ("Cola", 2, "0.10")).order
        first = service.pay(PayRequest(order_id=order.order_id, payment_method="card"))

        with pytest.raises(AlreadyPaidError) as exc_info:
            service.pay(PayRequest(order_id=order.order_id, payment_method="cash"))

        assert exc_info.value.status_code == 409
        stored = store.get_order(order.order_id)
        assert stored.payment.paid_at == first.payment.paid_at
        assert stored.payment.method == "card"

    def test_paying_seeded_paid_order_conflicts(self, store, migrated):
        with pytest.raises(AlreadyPaidError):
            OrderService(store).pay(PayRequest(order_id=migrated.orders["o1"], payment_method="cash"))

    def test_pays_seeded_unpaid_order(self, store, migrated):
        """The payment amount is the stored order total."""
        response = OrderService(store).pay(PayRequest(order_id=migrated.orders["o2"], payment_method="paypal"))

        assert response.status == "preparing"
        assert response.payment.amount == "6.20"

    def test_unknown_order(self, store):
        with pytest.raises(OrderNotFoundError):
            OrderService(store).pay(PayRequest(order_id=9999, payment_method="card"))


class TestMongoWritesAreSingleUpdates:
    """Pay and assign each change one order document in one write."""

    @pytest.fixture
    def writes(self, monkeypatch):
        calls = []
        update_one = mongomock.collection.Collection.update_one

        def counting(collection, *args, **kwargs):
            calls.append(args[0])
            return update_one(collection, *args, **kwargs)

        monkeypatch.setattr(mongomock.collection.Collection, "update_one", counting)
        return calls

    def test_pay_is_one_write(self, mongo_store, migrated, writes):
        response = OrderService(mongo_store).pay(
            PayRequest(order_id=migrated.orders["o2"], payment_method="card")
        )

        assert len(writes) == 1
        assert response.status == "preparing"

    def test_reassign_is_one_write(self, mongo_store, migrated, writes):
        service = OrderService(mongo_store)
        for rider in ("rider1@example.com", "rider2@example.com"):
            service.assign_delivery(AssignDeliveryRequest(
                rider_email=rider, order_id=migrated.orders["o2"], delivery_status="assigned",
            ))

        assert len(writes) == 2

    def test_failed_pay_leaves_order_payable(self, mongo_store, migrated, monkeypatch):
        """A lost write changes nothing, so the retry succeeds."""
        order_id = migrated.orders["o2"]
        service = OrderService(mongo_store)

        def lost(collection, *args, **kwargs):
            raise AutoReconnect("connection reset")

        with monkeypatch.context() as patch:
            patch.setattr(mongomock.collection.Collection, "update_one", lost)
            with pytest.raises(AutoReconnect):
                service.pay(PayRequest(order_id=order_id, payment_method="card"))

        stored = mongo_store.get_order(order_id)
        assert stored.status == "created"
        assert stored.payment is None or stored.payment.paid_at is None

        response = service.pay(PayRequest(order_id=order_id, payment_method="card"))
        assert response.status == "preparing"
        assert response.payment.paid_at is not None

    def test_pays_migrated_unpaid_payment_document(self, mongo_store, migrated, mongo_db):
        """An unpaid payment sub-document is filled in, keeping its paymentId."""
        order_id = migrated.orders["o2"]
        mongo_db["orders"].update_one(
            {"orderId": order_id},
            {"$set": {"payment": {"paymentId": 77, "amount": 6.2, "method": None, "paidAt": None}}},
        )

        response = OrderService(mongo_store).pay(PayRequest(order_id=order_id, payment_method="cash"))

        doc = mongo_db["orders"].find_one({"orderId": order_id})
        assert response.status == "preparing"
        assert doc["payment"]["paymentId"] == 77
        assert doc["payment"]["method"] == "cash"
        assert doc["payment"]["paidAt"] is not None


class TestAssignDelivery:
    """Tests for rider assignment."""

    def test_assign_then_reassign_keeps_assigned_at(self, store, migrated, line, clock):
        service = OrderService(store)
        order = place(service, migrated, line, ("Tafelspitz", 1, "9.50")).order

        first = service.assign_delivery(AssignDeliveryRequest(
            rider_email="rider1@example.com", order_id=order.order_id, delivery_status="assigned",
        )).delivery
        second = service.assign_delivery(AssignDeliveryRequest(
            rider_email="rider2@example.com", order_id=order.order_id, delivery_status="picked_up",
        )).delivery

        placed_at, first_at, second_at = clock
        assert first.assigned_at == first_at
        assert second.assigned_at == first_at != second_at
        assert store.get_order(order.order_id).delivery.assigned_at == first_at
        assert second.rider_email == "rider2@example.com"
        assert second.delivery_status == "picked_up"

    def test_assigns_pending_delivery_without_rider(self, store, migrated):
        """A `created` delivery has no assignedAt until a rider is set."""
        response = OrderService(store).assign_delivery(AssignDeliveryRequest(
            rider_email="rider2@example.com", order_id=migrated.orders["o2"], delivery_status="assigned",
        ))

        assert response.delivery.assigned_at is not None
        assert response.delivery.rider_email == "rider2@example.com"

    def test_transitions_are_not_enforced(self, store, migrated):
        """Moving a delivered order back to assigned is allowed."""
        response = OrderService(store).assign_delivery(AssignDeliveryRequest(
            rider_email="rider1@example.com", order_id=migrated.orders["o1"], delivery_status="assigned",
        ))

        assert response.delivery.delivery_status == "assigned"

    def test_customer_is_not_a_rider(self, store, migrated):
        with pytest.raises(NotFoundError):
            OrderService(store).assign_delivery(AssignDeliveryRequest(
                rider_email="customer1@example.com",
                order_id=migrated.orders["o1"],
                delivery_status="assigned",
            ))

    def test_unknown_order(self, store):
        with pytest.raises(OrderNotFoundError):
            OrderService(store).assign_delivery(AssignDeliveryRequest(
                rider_email="rider1@example.com", order_id=9999, delivery_status="assigned",
            ))


class TestListOrders:
    """Order listings share one flattened shape."""

    def test_newest_first(self, store, migrated):
        rows = OrderService(store).list_orders().orders

        assert [row.order_id for row in rows] == [
            migrated.orders[key] for key in ("o3", "o4", "o2", "o1")
        ]

    def test_filter_by_customer(self, store):
        rows = OrderService(store).list_orders(customer_email="customer1@example.com").orders

        assert {row.customer_email for row in rows} == {"customer1@example.com"}
        assert len(rows) == 2

    def test_filter_by_rider_and_delivery_status(self, store, migrated):
        rows = OrderService(store).list_orders(
            rider_email="rider1@example.com", delivery_status="delivered"
        ).orders

        assert [row.order_id for row in rows] == [migrated.orders["o1"]]
        assert rows[0].payment_method == "card"
        assert rows[0].restaurant_name == "Plachutta"

    def test_exclude_delivered(self, store, migrated):
        """Orders without a delivery stay in the list."""
        service = OrderService(store)
        rows = service.list_orders(exclude_delivered=True).orders

        assert migrated.orders["o1"] not in [row.order_id for row in rows]
        assert len(rows) == 3

    def test_limit(self, store):
        assert len(OrderService(store).list_orders(limit=2).orders) == 2

    def test_invalid_delivery_status(self, store):
        with pytest.raises(ValidationError):
            OrderService(store).list_orders(delivery_status="lost")
