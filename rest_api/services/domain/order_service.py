"""
Order Lifecycle Domain Service.

Place order, pay and assign delivery, written once against the OrderStore
port. Validation, cents arithmetic and the NotFound checks live here so both
store modes behave the same; the adapters only persist.
"""

from shared.config.constants import DeliveryStatus, Limits
from shared.config.logging import delivery_logger, mask_email, orders_logger
from shared.utils.exceptions import NotFoundError, OrderNotFoundError, ValidationError
from shared.utils.money import format_cents
from shared.utils.schemas import (
    AssignDeliveryRequest,
    AssignDeliveryResponse,
    CustomerSnapshotOutput,
    DeliveryOutput,
    OrderItemOutput,
    OrderListResponse,
    OrderOutput,
    OrderRowOutput,
    PayRequest,
    PayResponse,
    PaymentOutput,
    PlaceOrderRequest,
    PlaceOrderResponse,
    RestaurantSnapshotOutput,
)
from shared.utils.validators import clamp_limit, utc_now
from .order_store import OrderStore
from .records import OrderFilters, OrderRecord, OrderSummary


def order_output(order: OrderRecord) -> OrderOutput:
    return OrderOutput(
        order_id=order.order_id,
        created_at=order.created_at,
        status=order.status,
        total_amount=format_cents(order.total_cents),
        restaurant=RestaurantSnapshotOutput(
            restaurant_id=order.restaurant.restaurant_id,
            name=order.restaurant.name,
            address=order.restaurant.address,
        ),
        customer=CustomerSnapshotOutput(
            person_id=order.customer.person_id,
            name=order.customer.name,
            email=order.customer.email,
        ),
        order_items=[
            OrderItemOutput(
                menu_item_id=line.menu_item_id,
                name=line.name,
                quantity=line.quantity,
                unit_price=format_cents(line.unit_price_cents),
            )
            for line in order.lines
        ],
    )


def order_row_output(row: OrderSummary) -> OrderRowOutput:
    return OrderRowOutput(
        order_id=row.order_id,
        created_at=row.created_at,
        status=row.status,
        total_amount=format_cents(row.total_cents),
        restaurant_name=row.restaurant_name,
        customer_email=row.customer_email,
        delivery_status=row.delivery_status,
        assigned_at=row.assigned_at,
        rider_email=row.rider_email,
        payment_method=row.payment_method,
    )


class OrderService:
    """
    Domain service for the order lifecycle.

    Usage:
        service = OrderService(SqlOrderStore(db))
        response = service.place_order(body)
    """

    def __init__(self, store: OrderStore):
        self._store = store

    @property
    def mode(self) -> str:
        return self._store.mode

    def _require_order(self, order_id: int) -> OrderRecord:
        order = self._store.get_order(order_id)
        if order is None:
            raise OrderNotFoundError(order_id, mode=self.mode)
        return order

    # =========================================================================
    # Place order
    # =========================================================================

    def place_order(self, body: PlaceOrderRequest) -> PlaceOrderResponse:
        """
        Create an order with its lines.

        The total is the sum of quantity x unit price in integer cents and is
        never recomputed afterwards.
        """
        customer_email = body.customer_email.strip()
        restaurant_name = body.restaurant_name.strip()
        if not customer_email:
            raise ValidationError("customerEmail is required")
        if not restaurant_name:
            raise ValidationError("restaurantName is required")
        if not body.items:
            raise ValidationError("items must be a non-empty array")

        customer = self._store.find_customer(customer_email)
        if customer is None:
            raise NotFoundError("Customer", customer_email, mode=self.mode)

        restaurant = self._store.find_restaurant(restaurant_name)
        if restaurant is None:
            raise NotFoundError("Restaurant", restaurant_name, mode=self.mode)

        lines = self._store.resolve_lines(restaurant, list(body.items))
        total_cents = sum(line.line_total_cents for line in lines)

        order = self._store.insert_order(customer, restaurant, lines, total_cents, utc_now())

        orders_logger.info(
            "Order placed",
            order_id=order.order_id,
            mode=self.mode,
            restaurant=restaurant.name,
            customer=mask_email(customer.email),
            lines=len(lines),
            total=format_cents(total_cents),
        )
        return PlaceOrderResponse(order=order_output(order))

    # =========================================================================
    # Pay
    # =========================================================================

    def pay(self, body: PayRequest) -> PayResponse:
        """
        Record the payment of an order.

        A second payment is rejected with 409 in both modes and leaves the
        first paidAt untouched.
        """
        payment_method = body.payment_method.strip()
        if not payment_method:
            raise ValidationError("paymentMethod is required")

        order = self._require_order(body.order_id)
        payment = self._store.record_payment(order, payment_method, utc_now())
        order = self._require_order(body.order_id)

        orders_logger.info(
            "Payment recorded",
            order_id=order.order_id,
            mode=self.mode,
            method=payment.method,
            amount=format_cents(payment.amount_cents),
            status=order.status,
        )
        return PayResponse(
            order_id=order.order_id,
            status=order.status,
            payment=PaymentOutput(
                payment_id=payment.payment_id,
                amount=format_cents(payment.amount_cents),
                method=payment.method,
                paid_at=payment.paid_at,
            ),
        )

    # =========================================================================
    # Assign delivery
    # =========================================================================

    def assign_delivery(self, body: AssignDeliveryRequest) -> AssignDeliveryResponse:
        """
        Assign a rider and set the delivery status.

        Any of the four statuses may follow any other; only the value itself
        is checked. assignedAt keeps the time of the first assignment.
        """
        rider_email = body.rider_email.strip()
        if not rider_email:
            raise ValidationError("riderEmail is required")
        if body.delivery_status not in DeliveryStatus.ALL:
            raise ValidationError(
                f"deliveryStatus must be one of {', '.join(DeliveryStatus.ALL)}"
            )

        rider = self._store.find_rider(rider_email)
        if rider is None:
            raise NotFoundError("Rider", rider_email, mode=self.mode)

        order = self._require_order(body.order_id)
        delivery = self._store.assign_delivery(order, rider, body.delivery_status, utc_now())

        delivery_logger.info(
            "Delivery assigned",
            order_id=order.order_id,
            mode=self.mode,
            rider=mask_email(rider.email),
            delivery_status=delivery.delivery_status,
            assigned_at=delivery.assigned_at.isoformat() if delivery.assigned_at else None,
        )
        return AssignDeliveryResponse(
            delivery=DeliveryOutput(
                delivery_id=delivery.delivery_id,
                order_id=order.order_id,
                rider_email=delivery.rider_email or rider.email,
                delivery_status=delivery.delivery_status,
                assigned_at=delivery.assigned_at,
            )
        )

    # =========================================================================
    # Listing
    # =========================================================================

    def list_orders(
        self,
        customer_email: str | None = None,
        status: str | None = None,
        rider_email: str | None = None,
        delivery_status: str | None = None,
        exclude_delivered: bool = False,
        limit: int | None = Limits.LIST_DEFAULT,
    ) -> OrderListResponse:
        """Orders newest first with the same flattened shape in both modes."""
        if delivery_status and delivery_status not in DeliveryStatus.ALL:
            raise ValidationError(
                f"deliveryStatus must be one of {', '.join(DeliveryStatus.ALL)}"
            )

        filters = OrderFilters(
            customer_email=(customer_email or "").strip() or None,
            status=(status or "").strip() or None,
            rider_email=(rider_email or "").strip() or None,
            delivery_status=delivery_status or None,
            exclude_delivered=exclude_delivered,
            limit=clamp_limit(limit),
        )
        rows = self._store.list_orders(filters)
        return OrderListResponse(orders=[order_row_output(row) for row in rows])
