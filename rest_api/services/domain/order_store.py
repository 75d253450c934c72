"""
OrderStore: the storage port used by the order and report services.

There is one adapter per backing store (SqlOrderStore, MongoOrderStore).
Both must produce the same records for the same data, which is what the
contract tests in tests/test_order_service.py and tests/test_report_service.py
check by running every case against each adapter.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from shared.utils.schemas import OrderItemInput
from .records import (
    CustomerReportData,
    DateWindow,
    DeliveryRecord,
    OrderFilters,
    OrderLine,
    OrderRecord,
    OrderSummary,
    PaymentRecord,
    PersonRecord,
    RestaurantRecord,
    RiderReportData,
)


class OrderStore(ABC):
    """Abstract store adapter. `mode` is the `{mode}` path segment it serves."""

    mode: str

    # ------------------------------------------------------------------
    # Natural key lookups
    # ------------------------------------------------------------------

    @abstractmethod
    def find_customer(self, email: str) -> Optional[PersonRecord]:
        """Person with a customer role, by email."""

    @abstractmethod
    def find_rider(self, email: str) -> Optional[PersonRecord]:
        """Person with a rider role, by email."""

    @abstractmethod
    def find_restaurant(self, name: str) -> Optional[RestaurantRecord]:
        ...

    # ------------------------------------------------------------------
    # Order lifecycle
    # ------------------------------------------------------------------

    @abstractmethod
    def resolve_lines(
        self, restaurant: RestaurantRecord, items: list[OrderItemInput]
    ) -> list[OrderLine]:
        """
        Turn requested items into priced order lines.

        Raises:
            ValidationError: An item cannot be priced or is ambiguous.
            NotFoundError: A referenced menu item does not exist.
        """

    @abstractmethod
    def insert_order(
        self,
        customer: PersonRecord,
        restaurant: RestaurantRecord,
        lines: list[OrderLine],
        total_cents: int,
        created_at: datetime,
    ) -> OrderRecord:
        """Persist an order with its lines as one unit; nothing survives a failure."""

    @abstractmethod
    def get_order(self, order_id: int) -> Optional[OrderRecord]:
        ...

    @abstractmethod
    def record_payment(
        self, order: OrderRecord, method: str, paid_at: datetime
    ) -> PaymentRecord:
        """
        Mark the order paid and advance it from created to preparing.

        Raises:
            AlreadyPaidError: The order already has a paidAt.
        """

    @abstractmethod
    def assign_delivery(
        self,
        order: OrderRecord,
        rider: PersonRecord,
        delivery_status: str,
        now: datetime,
    ) -> DeliveryRecord:
        """
        Create or update the order's delivery.

        assignedAt is written by the first assignment only, with a conditional
        update so concurrent callers cannot overwrite it.
        """

    @abstractmethod
    def list_orders(self, filters: OrderFilters) -> list[OrderSummary]:
        """Orders newest first, at most `filters.limit` rows."""

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------

    @abstractmethod
    def customer_report(self, restaurant_name: str, window: DateWindow) -> CustomerReportData:
        ...

    @abstractmethod
    def rider_report(
        self,
        rider_email: str,
        window: DateWindow,
        delivery_status: Optional[str] = None,
    ) -> RiderReportData:
        ...
