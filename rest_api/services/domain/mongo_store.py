"""
Document OrderStore adapter (pymongo).

Each order is one self-contained document in `orders` with restaurant,
customer and rider snapshots embedded. Every logical write is one pipeline
update on one document, so it applies completely or not at all:

    pay             -> filter on payment.paidAt == null, status created -> preparing
    assign delivery -> $ifNull keeps the first delivery.assignedAt

Numeric orderIds are allocated as max(orderId) + 1 and protected by the unique
index on orders.orderId; collisions are retried a bounded number of times.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pymongo import ASCENDING, DESCENDING
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from shared.config.constants import Collections, DeliveryStatus, Limits, OrderStatus, StoreMode
from shared.config.logging import get_logger
from shared.utils.exceptions import AlreadyPaidError, InternalError, NotFoundError, ValidationError
from shared.utils.money import cents_to_float, to_cents, to_decimal
from shared.utils.schemas import OrderItemInput
from .order_store import OrderStore
from .records import (
    CustomerProfile,
    CustomerReportData,
    DateWindow,
    DeliveryRecord,
    GroupTotal,
    ItemTotal,
    OrderFilters,
    OrderLine,
    OrderRecord,
    OrderSummary,
    PaymentRecord,
    PersonRecord,
    RestaurantRecord,
    RiderProfile,
    RiderReportData,
)

logger = get_logger(__name__)


# =============================================================================
# Record -> document
# =============================================================================


def restaurant_document(restaurant: RestaurantRecord) -> dict[str, Any]:
    return {
        "restaurantId": restaurant.restaurant_id,
        "name": restaurant.name,
        "address": restaurant.address,
    }


def person_document(person: PersonRecord) -> dict[str, Any]:
    """Entry of the `people` collection, discriminated by `type`."""
    customer = None
    if person.customer is not None:
        customer = {
            "defaultAddress": person.customer.default_address,
            "preferredPaymentMethod": person.customer.preferred_payment_method,
        }
    rider = None
    if person.rider is not None:
        rider = {
            "vehicleType": person.rider.vehicle_type,
            "rating": person.rider.rating,
        }
    return {
        "personId": person.person_id,
        "type": person.kind,
        "name": person.name,
        "email": person.email,
        "phone": person.phone,
        "customer": customer,
        "rider": rider,
    }


def customer_snapshot(person: PersonRecord) -> dict[str, Any]:
    return {"personId": person.person_id, "name": person.name, "email": person.email}


def rider_snapshot(person: PersonRecord) -> dict[str, Any]:
    profile = person.rider or RiderProfile()
    return {
        "personId": person.person_id,
        "name": person.name,
        "email": person.email,
        "vehicleType": profile.vehicle_type,
        "rating": profile.rating,
    }


def order_document(order: OrderRecord) -> dict[str, Any]:
    """Self-contained order document; snapshots are copied, never referenced."""
    payment = None
    if order.payment is not None:
        payment = {
            "paymentId": order.payment.payment_id,
            "amount": cents_to_float(order.payment.amount_cents),
            "method": order.payment.method,
            "paidAt": order.payment.paid_at,
        }

    delivery = None
    if order.delivery is not None:
        delivery = {
            "deliveryId": order.delivery.delivery_id,
            "deliveryStatus": order.delivery.delivery_status,
            "assignedAt": order.delivery.assigned_at,
            "rider": rider_snapshot(order.delivery.rider) if order.delivery.rider else None,
        }

    return {
        "orderId": order.order_id,
        "createdAt": order.created_at,
        "status": order.status,
        "totalAmount": cents_to_float(order.total_cents),
        "restaurant": restaurant_document(order.restaurant),
        "customer": customer_snapshot(order.customer),
        "orderItems": [
            {
                "menuItemId": line.menu_item_id,
                "name": line.name,
                "quantity": line.quantity,
                "unitPrice": cents_to_float(line.unit_price_cents),
            }
            for line in order.lines
        ],
        "payment": payment,
        "delivery": delivery,
    }


# =============================================================================
# Document -> record
# =============================================================================


def person_from_document(doc: dict[str, Any]) -> PersonRecord:
    customer = doc.get("customer")
    rider = doc.get("rider")
    return PersonRecord(
        person_id=doc.get("personId"),
        name=doc.get("name"),
        email=doc.get("email"),
        phone=doc.get("phone"),
        customer=CustomerProfile(
            default_address=customer.get("defaultAddress"),
            preferred_payment_method=customer.get("preferredPaymentMethod"),
        ) if customer else None,
        rider=RiderProfile(
            vehicle_type=rider.get("vehicleType"),
            rating=rider.get("rating"),
        ) if rider else None,
    )


def _rider_from_snapshot(snapshot: Optional[dict[str, Any]]) -> Optional[PersonRecord]:
    if not snapshot:
        return None
    return PersonRecord(
        person_id=snapshot.get("personId"),
        name=snapshot.get("name"),
        email=snapshot.get("email"),
        rider=RiderProfile(
            vehicle_type=snapshot.get("vehicleType"),
            rating=snapshot.get("rating"),
        ),
    )


def _restaurant_from_document(doc: Optional[dict[str, Any]]) -> RestaurantRecord:
    doc = doc or {}
    return RestaurantRecord(
        restaurant_id=doc.get("restaurantId"),
        name=doc.get("name"),
        address=doc.get("address"),
    )


def _payment_from_document(order_id: int, doc: Optional[dict[str, Any]]) -> Optional[PaymentRecord]:
    if not doc:
        return None
    return PaymentRecord(
        payment_id=doc.get("paymentId"),
        order_id=order_id,
        amount_cents=to_cents(doc.get("amount")),
        method=doc.get("method"),
        paid_at=doc.get("paidAt"),
    )


def _delivery_from_document(order_id: int, doc: Optional[dict[str, Any]]) -> Optional[DeliveryRecord]:
    if not doc:
        return None
    return DeliveryRecord(
        delivery_id=doc.get("deliveryId"),
        order_id=order_id,
        delivery_status=doc.get("deliveryStatus"),
        assigned_at=doc.get("assignedAt"),
        rider=_rider_from_snapshot(doc.get("rider")),
    )


def order_from_document(doc: dict[str, Any]) -> OrderRecord:
    order_id = int(doc["orderId"])
    customer = doc.get("customer") or {}
    return OrderRecord(
        order_id=order_id,
        created_at=doc.get("createdAt"),
        status=doc.get("status"),
        total_cents=to_cents(doc.get("totalAmount")),
        restaurant=_restaurant_from_document(doc.get("restaurant")),
        customer=PersonRecord(
            person_id=customer.get("personId"),
            name=customer.get("name"),
            email=customer.get("email"),
        ),
        lines=tuple(
            OrderLine(
                menu_item_id=item.get("menuItemId"),
                name=item.get("name"),
                quantity=int(item.get("quantity") or 0),
                unit_price_cents=to_cents(item.get("unitPrice")),
            )
            for item in doc.get("orderItems") or []
        ),
        payment=_payment_from_document(order_id, doc.get("payment")),
        delivery=_delivery_from_document(order_id, doc.get("delivery")),
    )


def _window_match(window: DateWindow) -> dict[str, Any]:
    bounds: dict[str, Any] = {}
    if window.start is not None:
        bounds["$gte"] = window.start
    if window.end is not None:
        bounds["$lte"] = window.end
    return {"createdAt": bounds} if bounds else {}


def _by_day_stages(extra_group: dict[str, Any]) -> list[dict[str, Any]]:
    """Group by calendar day (UTC), newest first."""
    return [
        {
            "$group": {
                "_id": {
                    "year": {"$year": "$createdAt"},
                    "month": {"$month": "$createdAt"},
                    "day": {"$dayOfMonth": "$createdAt"},
                },
                "count": {"$sum": 1},
                **extra_group,
            }
        },
        {"$sort": {"_id.year": -1, "_id.month": -1, "_id.day": -1}},
        {"$limit": Limits.REPORT_DAYS},
    ]


def _day_key(group_id: dict[str, Any]) -> str:
    return f"{group_id['year']:04d}-{group_id['month']:02d}-{group_id['day']:02d}"


class MongoOrderStore(OrderStore):
    """OrderStore over the denormalized document collections."""

    mode = StoreMode.MONGO

    def __init__(self, db: Database):
        self._db = db

    @property
    def orders(self) -> Collection:
        return self._db[Collections.ORDERS]

    @property
    def people(self) -> Collection:
        return self._db[Collections.PEOPLE]

    @property
    def restaurants(self) -> Collection:
        return self._db[Collections.RESTAURANTS]

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def find_customer(self, email: str) -> Optional[PersonRecord]:
        doc = self.people.find_one({"email": email, "customer": {"$ne": None}})
        return person_from_document(doc) if doc else None

    def find_rider(self, email: str) -> Optional[PersonRecord]:
        doc = self.people.find_one({"email": email, "rider": {"$ne": None}})
        return person_from_document(doc) if doc else None

    def find_restaurant(self, name: str) -> Optional[RestaurantRecord]:
        doc = self.restaurants.find_one({"name": name})
        return _restaurant_from_document(doc) if doc else None

    # ------------------------------------------------------------------
    # Order lifecycle
    # ------------------------------------------------------------------

    def resolve_lines(
        self, restaurant: RestaurantRecord, items: list[OrderItemInput]
    ) -> list[OrderLine]:
        """There is no menu collection: the caller's name and unitPrice are taken as given."""
        lines: list[OrderLine] = []
        for idx, item in enumerate(items):
            if not item.name:
                raise ValidationError(f"items[{idx}].menuItemName is required")
            if item.unit_price is None:
                raise ValidationError(f"items[{idx}].unitPrice is required")
            lines.append(
                OrderLine(
                    menu_item_id=item.menu_item_id,
                    name=item.name,
                    quantity=item.quantity,
                    unit_price_cents=to_cents(item.unit_price),
                )
            )
        return lines

    def _next_order_id(self) -> int:
        last = self.orders.find_one(
            {}, sort=[("orderId", DESCENDING)], projection={"_id": 0, "orderId": 1}
        )
        return (int(last["orderId"]) if last and last.get("orderId") else 0) + 1

    def insert_order(
        self,
        customer: PersonRecord,
        restaurant: RestaurantRecord,
        lines: list[OrderLine],
        total_cents: int,
        created_at: datetime,
    ) -> OrderRecord:
        for attempt in range(1, Limits.ORDER_ID_ATTEMPTS + 1):
            order = OrderRecord(
                order_id=self._next_order_id(),
                created_at=created_at,
                status=OrderStatus.CREATED,
                total_cents=total_cents,
                restaurant=restaurant,
                customer=customer,
                lines=tuple(lines),
            )
            try:
                self.orders.insert_one(order_document(order))
            except DuplicateKeyError:
                logger.warning(
                    "orderId already taken, retrying",
                    order_id=order.order_id,
                    attempt=attempt,
                )
                continue
            return order

        raise InternalError(
            "could not allocate a unique orderId", attempts=Limits.ORDER_ID_ATTEMPTS
        )

    def get_order(self, order_id: int) -> Optional[OrderRecord]:
        doc = self.orders.find_one({"orderId": order_id})
        return order_from_document(doc) if doc else None

    def record_payment(
        self, order: OrderRecord, method: str, paid_at: datetime
    ) -> PaymentRecord:
        # Migrated unpaid orders carry a payment sub-document with paidAt null
        result = self.orders.update_one(
            {
                "orderId": order.order_id,
                "$or": [{"payment": None}, {"payment.paidAt": None}],
            },
            [
                {
                    "$set": {
                        "payment": {
                            "paymentId": {"$ifNull": ["$payment.paymentId", None]},
                            "amount": cents_to_float(order.total_cents),
                            "method": {"$literal": method},
                            "paidAt": {"$literal": paid_at},
                        },
                        "status": {
                            "$cond": [
                                {"$eq": ["$status", OrderStatus.CREATED]},
                                OrderStatus.PREPARING,
                                "$status",
                            ]
                        },
                    }
                }
            ],
        )
        if result.matched_count == 0:
            raise AlreadyPaidError(order.order_id, mode=self.mode)

        doc = self.orders.find_one({"orderId": order.order_id}, projection={"payment": 1})
        return _payment_from_document(order.order_id, doc["payment"])

    def assign_delivery(
        self,
        order: OrderRecord,
        rider: PersonRecord,
        delivery_status: str,
        now: datetime,
    ) -> DeliveryRecord:
        # Re-assignment replaces rider and status; assignedAt keeps its first value
        result = self.orders.update_one(
            {"orderId": order.order_id},
            [
                {
                    "$set": {
                        "delivery": {
                            "deliveryId": {"$ifNull": ["$delivery.deliveryId", None]},
                            "deliveryStatus": {"$literal": delivery_status},
                            "assignedAt": {"$ifNull": ["$delivery.assignedAt", {"$literal": now}]},
                            "rider": {"$literal": rider_snapshot(rider)},
                        }
                    }
                }
            ],
        )
        if result.matched_count == 0:
            raise NotFoundError("Order", order.order_id)

        doc = self.orders.find_one({"orderId": order.order_id}, projection={"delivery": 1})
        return _delivery_from_document(order.order_id, doc["delivery"])

    def list_orders(self, filters: OrderFilters) -> list[OrderSummary]:
        query: dict[str, Any] = {}
        if filters.customer_email:
            query["customer.email"] = filters.customer_email
        if filters.status:
            query["status"] = filters.status
        if filters.rider_email:
            query["delivery.rider.email"] = filters.rider_email

        delivery_clauses = []
        if filters.delivery_status:
            delivery_clauses.append({"delivery.deliveryStatus": filters.delivery_status})
        if filters.exclude_delivered:
            delivery_clauses.append({"delivery.deliveryStatus": {"$ne": DeliveryStatus.DELIVERED}})
        if delivery_clauses:
            query["$and"] = delivery_clauses

        cursor = (
            self.orders.find(query)
            .sort([("createdAt", DESCENDING), ("orderId", DESCENDING)])
            .limit(filters.limit)
        )

        rows = []
        for doc in cursor:
            delivery = doc.get("delivery") or {}
            rider = delivery.get("rider") or {}
            payment = doc.get("payment") or {}
            rows.append(
                OrderSummary(
                    order_id=int(doc["orderId"]),
                    created_at=doc.get("createdAt"),
                    status=doc.get("status"),
                    total_cents=to_cents(doc.get("totalAmount")),
                    restaurant_name=(doc.get("restaurant") or {}).get("name"),
                    customer_email=(doc.get("customer") or {}).get("email"),
                    delivery_status=delivery.get("deliveryStatus"),
                    assigned_at=delivery.get("assignedAt"),
                    rider_email=rider.get("email"),
                    payment_method=payment.get("method"),
                )
            )
        return rows

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------

    def customer_report(self, restaurant_name: str, window: DateWindow) -> CustomerReportData:
        match = {"restaurant.name": restaurant_name, **_window_match(window)}

        totals = list(self.orders.aggregate([
            {"$match": match},
            {"$group": {"_id": None, "orders": {"$sum": 1}, "revenue": {"$sum": "$totalAmount"}}},
        ]))
        total_orders = totals[0]["orders"] if totals else 0
        revenue = to_decimal(totals[0]["revenue"]) if totals else to_decimal(0)

        status_rows = self.orders.aggregate([
            {"$match": match},
            {"$group": {"_id": "$status", "orders": {"$sum": 1}, "revenue": {"$sum": "$totalAmount"}}},
            {"$sort": {"_id": ASCENDING}},
        ])

        day_rows = self.orders.aggregate([
            {"$match": match},
            *_by_day_stages({"revenue": {"$sum": "$totalAmount"}}),
        ])

        method_rows = list(self.orders.aggregate([
            {"$match": {**match, "payment": {"$ne": None}, "payment.paidAt": {"$ne": None}}},
            {
                "$group": {
                    "_id": "$payment.method",
                    "payments": {"$sum": 1},
                    "amount": {"$sum": "$payment.amount"},
                }
            },
            {"$sort": {"payments": DESCENDING, "_id": ASCENDING}},
        ]))

        item_rows = self.orders.aggregate([
            {"$match": match},
            {"$unwind": "$orderItems"},
            {
                "$group": {
                    "_id": {"menuItemId": "$orderItems.menuItemId", "name": "$orderItems.name"},
                    "quantity": {"$sum": "$orderItems.quantity"},
                    "revenue": {
                        "$sum": {"$multiply": ["$orderItems.quantity", "$orderItems.unitPrice"]}
                    },
                }
            },
            {"$sort": {"quantity": DESCENDING, "_id.name": ASCENDING, "_id.menuItemId": ASCENDING}},
            {"$limit": Limits.REPORT_TOP_ITEMS},
        ])

        return CustomerReportData(
            total_orders=total_orders,
            revenue=revenue,
            # Paid orders are exactly the ones grouped by payment method
            paid_orders=sum(row["payments"] for row in method_rows),
            by_status=[
                GroupTotal(row["_id"], row["orders"], to_decimal(row["revenue"]))
                for row in status_rows
            ],
            by_day=[
                GroupTotal(_day_key(row["_id"]), row["count"], to_decimal(row["revenue"]))
                for row in day_rows
            ],
            by_payment_method=[
                GroupTotal(row["_id"], row["payments"], to_decimal(row["amount"]))
                for row in method_rows
            ],
            top_items=[
                ItemTotal(
                    row["_id"].get("menuItemId"),
                    row["_id"].get("name"),
                    int(row["quantity"]),
                    to_decimal(row["revenue"]),
                )
                for row in item_rows
            ],
        )

    def rider_report(
        self,
        rider_email: str,
        window: DateWindow,
        delivery_status: Optional[str] = None,
    ) -> RiderReportData:
        match = {"delivery.rider.email": rider_email, **_window_match(window)}
        if delivery_status:
            match["delivery.deliveryStatus"] = delivery_status

        totals = list(self.orders.aggregate([
            {"$match": match},
            {"$group": {"_id": None, "deliveries": {"$sum": 1}, "revenue": {"$sum": "$totalAmount"}}},
        ]))

        status_counts = {status: 0 for status in DeliveryStatus.ALL}
        for row in self.orders.aggregate([
            {"$match": match},
            {"$group": {"_id": "$delivery.deliveryStatus", "count": {"$sum": 1}}},
        ]):
            if row["_id"] in status_counts:
                status_counts[row["_id"]] = row["count"]

        day_rows = self.orders.aggregate([{"$match": match}, *_by_day_stages({})])

        restaurant_rows = self.orders.aggregate([
            {"$match": match},
            {"$group": {"_id": "$restaurant.name", "count": {"$sum": 1}}},
            {"$sort": {"count": DESCENDING, "_id": ASCENDING}},
            {"$limit": Limits.REPORT_TOP_RESTAURANTS},
        ])

        return RiderReportData(
            total_deliveries=totals[0]["deliveries"] if totals else 0,
            revenue=to_decimal(totals[0]["revenue"]) if totals else to_decimal(0),
            status_counts=status_counts,
            by_day=[GroupTotal(_day_key(row["_id"]), row["count"]) for row in day_rows],
            by_restaurant=[GroupTotal(row["_id"], row["count"]) for row in restaurant_rows],
        )
