"""
Relational OrderStore adapter (SQLAlchemy, MariaDB in production).

Every multi-statement write runs inside one `transaction()` block, so an order
and its items, or a payment and the status change it causes, commit together.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, aliased, selectinload

from shared.config.constants import DeliveryStatus, Limits, OrderStatus, StoreMode
from shared.config.logging import get_logger
from shared.infrastructure.db import transaction
from shared.utils.exceptions import (
    AlreadyPaidError,
    AmbiguousMenuItemError,
    NotFoundError,
    ValidationError,
)
from shared.utils.money import cents_to_decimal, to_cents, to_decimal
from shared.utils.schemas import OrderItemInput
from rest_api.models import (
    Customer,
    Delivery,
    MenuItem,
    Order,
    OrderItem,
    Payment,
    Person,
    Restaurant,
    Rider,
)
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

# Person joined through delivery.rider_id (the customer is joined as Person)
RiderPerson = aliased(Person, name="rider_person")


def person_record(person: Person) -> PersonRecord:
    """Map a Person row and its role rows to the discriminated record."""
    customer = None
    if person.customer is not None:
        customer = CustomerProfile(
            default_address=person.customer.default_address,
            preferred_payment_method=person.customer.preferred_payment_method,
        )
    rider = None
    if person.rider is not None:
        rating = person.rider.rating
        rider = RiderProfile(
            vehicle_type=person.rider.vehicle_type,
            rating=float(rating) if rating is not None else None,
        )
    return PersonRecord(
        person_id=person.person_id,
        name=person.name,
        email=person.email,
        phone=person.phone,
        customer=customer,
        rider=rider,
    )


def restaurant_record(restaurant: Restaurant) -> RestaurantRecord:
    return RestaurantRecord(
        restaurant_id=restaurant.restaurant_id,
        name=restaurant.name,
        address=restaurant.address,
    )


def order_record(order: Order) -> OrderRecord:
    """Map a fully loaded Order (see ORDER_LOAD_OPTIONS) to a record."""
    lines = tuple(
        OrderLine(
            menu_item_id=item.menu_item_id,
            name=item.menu_item.name if item.menu_item is not None else None,
            quantity=item.quantity,
            unit_price_cents=to_cents(item.unit_price),
        )
        for item in order.items
    )

    payment = None
    if order.payment is not None:
        payment = PaymentRecord(
            payment_id=order.payment.payment_id,
            order_id=order.order_id,
            amount_cents=to_cents(order.payment.amount),
            method=order.payment.payment_method,
            paid_at=order.payment.paid_at,
        )

    delivery = None
    if order.delivery is not None:
        rider = order.delivery.rider
        delivery = DeliveryRecord(
            delivery_id=order.delivery.delivery_id,
            order_id=order.order_id,
            delivery_status=order.delivery.delivery_status,
            assigned_at=order.delivery.assigned_at,
            rider=person_record(rider.person) if rider is not None else None,
        )

    return OrderRecord(
        order_id=order.order_id,
        created_at=order.created_at,
        status=order.status,
        total_cents=to_cents(order.total_amount),
        restaurant=restaurant_record(order.restaurant),
        customer=person_record(order.customer.person),
        lines=lines,
        payment=payment,
        delivery=delivery,
    )


PERSON_LOAD_OPTIONS = (selectinload(Person.customer), selectinload(Person.rider))

ORDER_LOAD_OPTIONS = (
    selectinload(Order.restaurant),
    selectinload(Order.customer).selectinload(Customer.person).options(*PERSON_LOAD_OPTIONS),
    selectinload(Order.items).selectinload(OrderItem.menu_item),
    selectinload(Order.payment),
    selectinload(Order.delivery)
    .selectinload(Delivery.rider)
    .selectinload(Rider.person)
    .options(*PERSON_LOAD_OPTIONS),
)


def _window_conditions(column, window: DateWindow) -> list:
    conditions = []
    if window.start is not None:
        conditions.append(column >= window.start)
    if window.end is not None:
        conditions.append(column <= window.end)
    return conditions


def _day_key(value) -> str:
    """DATE() comes back as a date on MariaDB and as a string on SQLite."""
    return str(value)


class SqlOrderStore(OrderStore):
    """OrderStore over the normalized relational schema."""

    mode = StoreMode.SQL

    def __init__(self, db: Session):
        self._db = db

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def find_customer(self, email: str) -> Optional[PersonRecord]:
        person = self._db.scalar(
            select(Person)
            .join(Customer, Customer.customer_id == Person.person_id)
            .where(Person.email == email)
            .options(*PERSON_LOAD_OPTIONS)
        )
        return person_record(person) if person is not None else None

    def find_rider(self, email: str) -> Optional[PersonRecord]:
        person = self._db.scalar(
            select(Person)
            .join(Rider, Rider.rider_id == Person.person_id)
            .where(Person.email == email)
            .options(*PERSON_LOAD_OPTIONS)
        )
        return person_record(person) if person is not None else None

    def find_restaurant(self, name: str) -> Optional[RestaurantRecord]:
        restaurant = self._db.scalar(select(Restaurant).where(Restaurant.name == name))
        return restaurant_record(restaurant) if restaurant is not None else None

    def list_riders(self) -> list[PersonRecord]:
        """All riders sorted by name."""
        people = self._db.scalars(
            select(Person)
            .join(Rider, Rider.rider_id == Person.person_id)
            .options(*PERSON_LOAD_OPTIONS)
            .order_by(Person.name, Person.person_id)
        ).all()
        return [person_record(person) for person in people]

    # ------------------------------------------------------------------
    # Order lifecycle
    # ------------------------------------------------------------------

    def resolve_lines(
        self, restaurant: RestaurantRecord, items: list[OrderItemInput]
    ) -> list[OrderLine]:
        """
        Price each line from the restaurant's menu.

        Lines are resolved by menuItemId when given, otherwise by exact name.
        A name matching several menu rows is rejected as ambiguous.
        """
        lines: list[OrderLine] = []
        for idx, item in enumerate(items):
            if item.menu_item_id is not None:
                menu_item = self._db.scalar(
                    select(MenuItem).where(
                        MenuItem.menu_item_id == item.menu_item_id,
                        MenuItem.restaurant_id == restaurant.restaurant_id,
                    )
                )
                if menu_item is None:
                    raise NotFoundError(
                        "Menu item", item.menu_item_id, restaurant=restaurant.name
                    )
            elif item.name:
                matches = self._db.scalars(
                    select(MenuItem)
                    .where(
                        MenuItem.restaurant_id == restaurant.restaurant_id,
                        MenuItem.name == item.name,
                    )
                    .order_by(MenuItem.menu_item_id)
                ).all()
                if not matches:
                    raise NotFoundError("Menu item", item.name, restaurant=restaurant.name)
                if len(matches) > 1:
                    raise AmbiguousMenuItemError(item.name, restaurant.name, len(matches))
                menu_item = matches[0]
            else:
                raise ValidationError(f"items[{idx}].menuItemId or items[{idx}].menuItemName is required")

            lines.append(
                OrderLine(
                    menu_item_id=menu_item.menu_item_id,
                    name=menu_item.name,
                    quantity=item.quantity,
                    unit_price_cents=to_cents(menu_item.price),
                )
            )
        return lines

    def insert_order(
        self,
        customer: PersonRecord,
        restaurant: RestaurantRecord,
        lines: list[OrderLine],
        total_cents: int,
        created_at: datetime,
    ) -> OrderRecord:
        order = Order(
            customer_id=customer.person_id,
            restaurant_id=restaurant.restaurant_id,
            created_at=created_at,
            status=OrderStatus.CREATED,
            total_amount=cents_to_decimal(total_cents),
        )
        order.items = [
            OrderItem(
                menu_item_id=line.menu_item_id,
                quantity=line.quantity,
                unit_price=cents_to_decimal(line.unit_price_cents),
            )
            for line in lines
        ]

        with transaction(self._db):
            self._db.add(order)
            self._db.flush()

        return OrderRecord(
            order_id=order.order_id,
            created_at=created_at,
            status=OrderStatus.CREATED,
            total_cents=total_cents,
            restaurant=restaurant,
            customer=customer,
            lines=tuple(lines),
        )

    def get_order(self, order_id: int) -> Optional[OrderRecord]:
        # Conditional UPDATE statements bypass the identity map
        self._db.expire_all()
        order = self._db.scalar(
            select(Order).where(Order.order_id == order_id).options(*ORDER_LOAD_OPTIONS)
        )
        return order_record(order) if order is not None else None

    def record_payment(
        self, order: OrderRecord, method: str, paid_at: datetime
    ) -> PaymentRecord:
        """
        Set paid_at only where it is still NULL.

        An unpaid payment row is completed in place, a missing one is inserted.
        A concurrent insert trips the unique order_id constraint and is
        reported as a second payment.
        """
        amount = cents_to_decimal(order.total_cents)
        try:
            with transaction(self._db):
                result = self._db.execute(
                    update(Payment)
                    .where(Payment.order_id == order.order_id, Payment.paid_at.is_(None))
                    .values(amount=amount, payment_method=method, paid_at=paid_at)
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount == 0:
                    existing = self._db.scalar(
                        select(Payment.payment_id).where(Payment.order_id == order.order_id)
                    )
                    if existing is not None:
                        raise AlreadyPaidError(order.order_id, mode=self.mode)
                    self._db.add(
                        Payment(
                            order_id=order.order_id,
                            amount=amount,
                            payment_method=method,
                            paid_at=paid_at,
                        )
                    )
                    self._db.flush()

                self._db.execute(
                    update(Order)
                    .where(Order.order_id == order.order_id, Order.status == OrderStatus.CREATED)
                    .values(status=OrderStatus.PREPARING)
                    .execution_options(synchronize_session=False)
                )
        except IntegrityError:
            raise AlreadyPaidError(order.order_id, mode=self.mode)

        self._db.expire_all()
        payment = self._db.scalar(select(Payment).where(Payment.order_id == order.order_id))
        return PaymentRecord(
            payment_id=payment.payment_id,
            order_id=order.order_id,
            amount_cents=to_cents(payment.amount),
            method=payment.payment_method,
            paid_at=payment.paid_at,
        )

    def assign_delivery(
        self,
        order: OrderRecord,
        rider: PersonRecord,
        delivery_status: str,
        now: datetime,
    ) -> DeliveryRecord:
        try:
            with transaction(self._db):
                existing = self._db.scalar(
                    select(Delivery.delivery_id).where(Delivery.order_id == order.order_id)
                )
                if existing is None:
                    self._db.add(
                        Delivery(
                            order_id=order.order_id,
                            rider_id=rider.person_id,
                            assigned_at=now,
                            delivery_status=delivery_status,
                        )
                    )
                    self._db.flush()
                else:
                    self._update_delivery(order.order_id, rider.person_id, delivery_status, now)
        except IntegrityError:
            # Another request created the row first; fall back to the update path
            logger.info("Delivery row created concurrently", order_id=order.order_id)
            with transaction(self._db):
                self._update_delivery(order.order_id, rider.person_id, delivery_status, now)

        self._db.expire_all()
        delivery = self._db.scalar(select(Delivery).where(Delivery.order_id == order.order_id))
        return DeliveryRecord(
            delivery_id=delivery.delivery_id,
            order_id=order.order_id,
            delivery_status=delivery.delivery_status,
            assigned_at=delivery.assigned_at,
            rider=rider,
        )

    def _update_delivery(
        self, order_id: int, rider_id: int, delivery_status: str, now: datetime
    ) -> None:
        # COALESCE keeps the first assigned_at in a single statement
        self._db.execute(
            update(Delivery)
            .where(Delivery.order_id == order_id)
            .values(
                rider_id=rider_id,
                delivery_status=delivery_status,
                assigned_at=func.coalesce(Delivery.assigned_at, now),
            )
            .execution_options(synchronize_session=False)
        )

    def list_orders(self, filters: OrderFilters) -> list[OrderSummary]:
        stmt = (
            select(
                Order.order_id,
                Order.created_at,
                Order.status,
                Order.total_amount,
                Restaurant.name,
                Person.email,
                Delivery.delivery_status,
                Delivery.assigned_at,
                RiderPerson.email,
                Payment.payment_method,
            )
            .join(Restaurant, Restaurant.restaurant_id == Order.restaurant_id)
            .join(Person, Person.person_id == Order.customer_id)
            .outerjoin(Delivery, Delivery.order_id == Order.order_id)
            .outerjoin(RiderPerson, RiderPerson.person_id == Delivery.rider_id)
            .outerjoin(Payment, Payment.order_id == Order.order_id)
        )

        if filters.customer_email:
            stmt = stmt.where(Person.email == filters.customer_email)
        if filters.status:
            stmt = stmt.where(Order.status == filters.status)
        if filters.rider_email:
            stmt = stmt.where(RiderPerson.email == filters.rider_email)
        if filters.delivery_status:
            stmt = stmt.where(Delivery.delivery_status == filters.delivery_status)
        if filters.exclude_delivered:
            stmt = stmt.where(
                or_(
                    Delivery.delivery_status.is_(None),
                    Delivery.delivery_status != DeliveryStatus.DELIVERED,
                )
            )

        stmt = stmt.order_by(Order.created_at.desc(), Order.order_id.desc()).limit(filters.limit)

        return [
            OrderSummary(
                order_id=row[0],
                created_at=row[1],
                status=row[2],
                total_cents=to_cents(row[3]),
                restaurant_name=row[4],
                customer_email=row[5],
                delivery_status=row[6],
                assigned_at=row[7],
                rider_email=row[8],
                payment_method=row[9],
            )
            for row in self._db.execute(stmt).all()
        ]

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------

    def customer_report(self, restaurant_name: str, window: DateWindow) -> CustomerReportData:
        conditions = [Restaurant.name == restaurant_name]
        conditions += _window_conditions(Order.created_at, window)
        restaurant_join = (Restaurant, Restaurant.restaurant_id == Order.restaurant_id)

        total_orders, revenue, paid_orders = self._db.execute(
            select(
                func.count(Order.order_id),
                func.coalesce(func.sum(Order.total_amount), 0),
                func.count(Payment.paid_at),
            )
            .select_from(Order)
            .join(*restaurant_join)
            .outerjoin(Payment, Payment.order_id == Order.order_id)
            .where(*conditions)
        ).one()

        status_rows = self._db.execute(
            select(Order.status, func.count(Order.order_id), func.sum(Order.total_amount))
            .join(*restaurant_join)
            .where(*conditions)
            .group_by(Order.status)
            .order_by(Order.status)
        ).all()

        day = func.date(Order.created_at).label("day")
        day_rows = self._db.execute(
            select(day, func.count(Order.order_id), func.sum(Order.total_amount))
            .join(*restaurant_join)
            .where(*conditions)
            .group_by(day)
            .order_by(day.desc())
            .limit(Limits.REPORT_DAYS)
        ).all()

        payments = func.count(Payment.payment_id)
        method_rows = self._db.execute(
            select(Payment.payment_method, payments, func.sum(Payment.amount))
            .join(Order, Order.order_id == Payment.order_id)
            .join(*restaurant_join)
            .where(*conditions, Payment.paid_at.is_not(None))
            .group_by(Payment.payment_method)
            .order_by(payments.desc(), Payment.payment_method)
        ).all()

        quantity = func.sum(OrderItem.quantity)
        item_rows = self._db.execute(
            select(
                OrderItem.menu_item_id,
                MenuItem.name,
                quantity,
                func.sum(OrderItem.quantity * OrderItem.unit_price),
            )
            .join(Order, Order.order_id == OrderItem.order_id)
            .join(*restaurant_join)
            .join(MenuItem, MenuItem.menu_item_id == OrderItem.menu_item_id)
            .where(*conditions)
            .group_by(OrderItem.menu_item_id, MenuItem.name)
            .order_by(quantity.desc(), MenuItem.name, OrderItem.menu_item_id)
            .limit(Limits.REPORT_TOP_ITEMS)
        ).all()

        return CustomerReportData(
            total_orders=total_orders,
            revenue=to_decimal(revenue),
            paid_orders=paid_orders,
            by_status=[GroupTotal(status, count, to_decimal(amount)) for status, count, amount in status_rows],
            by_day=[GroupTotal(_day_key(d), count, to_decimal(amount)) for d, count, amount in day_rows],
            by_payment_method=[
                GroupTotal(method, count, to_decimal(amount)) for method, count, amount in method_rows
            ],
            top_items=[
                ItemTotal(menu_item_id, name, int(qty), to_decimal(revenue_))
                for menu_item_id, name, qty, revenue_ in item_rows
            ],
        )

    def rider_report(
        self,
        rider_email: str,
        window: DateWindow,
        delivery_status: Optional[str] = None,
    ) -> RiderReportData:
        conditions = [Person.email == rider_email]
        conditions += _window_conditions(Order.created_at, window)
        if delivery_status:
            conditions.append(Delivery.delivery_status == delivery_status)

        def deliveries(*columns):
            return (
                select(*columns)
                .select_from(Delivery)
                .join(Person, Person.person_id == Delivery.rider_id)
                .join(Order, Order.order_id == Delivery.order_id)
                .where(and_(*conditions))
            )

        total_deliveries, revenue = self._db.execute(
            deliveries(
                func.count(Delivery.delivery_id),
                func.coalesce(func.sum(Order.total_amount), 0),
            )
        ).one()

        status_counts = {status: 0 for status in DeliveryStatus.ALL}
        for status, count in self._db.execute(
            deliveries(Delivery.delivery_status, func.count(Delivery.delivery_id))
            .group_by(Delivery.delivery_status)
        ).all():
            if status in status_counts:
                status_counts[status] = count

        day = func.date(Order.created_at).label("day")
        day_rows = self._db.execute(
            deliveries(day, func.count(Delivery.delivery_id))
            .group_by(day)
            .order_by(day.desc())
            .limit(Limits.REPORT_DAYS)
        ).all()

        count = func.count(Delivery.delivery_id)
        restaurant_rows = self._db.execute(
            deliveries(Restaurant.name, count)
            .join(Restaurant, Restaurant.restaurant_id == Order.restaurant_id)
            .group_by(Restaurant.restaurant_id, Restaurant.name)
            .order_by(count.desc(), Restaurant.name)
            .limit(Limits.REPORT_TOP_RESTAURANTS)
        ).all()

        return RiderReportData(
            total_deliveries=total_deliveries,
            revenue=to_decimal(revenue),
            status_counts=status_counts,
            by_day=[GroupTotal(_day_key(d), n) for d, n in day_rows],
            by_restaurant=[GroupTotal(name, n) for name, n in restaurant_rows],
        )
