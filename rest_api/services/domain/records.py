"""
Domain records shared by both store adapters.

Records are immutable snapshots. Money is kept in integer cents on order lines
and totals so both stores agree to the cent; report aggregates carry Decimal
amounts as returned by the store and are rounded once by the report service.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Optional

from shared.config.constants import DeliveryStatus, PersonType


# =============================================================================
# People
# =============================================================================


@dataclass(frozen=True)
class CustomerProfile:
    default_address: Optional[str] = None
    preferred_payment_method: Optional[str] = None


@dataclass(frozen=True)
class RiderProfile:
    vehicle_type: Optional[str] = None
    rating: Optional[float] = None


@dataclass(frozen=True)
class PersonRecord:
    """
    A person with its optional roles.

    The relational schema keeps roles in separate tables sharing the person
    key; here they are plain optional profiles. `kind` is the discriminator
    stored in the document store (rider wins over customer).
    """

    person_id: int
    name: str
    email: str
    phone: Optional[str] = None
    customer: Optional[CustomerProfile] = None
    rider: Optional[RiderProfile] = None

    @property
    def kind(self) -> str:
        if self.rider is not None:
            return PersonType.RIDER
        if self.customer is not None:
            return PersonType.CUSTOMER
        return PersonType.PERSON


@dataclass(frozen=True)
class RestaurantRecord:
    restaurant_id: int
    name: str
    address: Optional[str] = None


# =============================================================================
# Orders
# =============================================================================


@dataclass(frozen=True)
class OrderLine:
    """One order line with its price snapshot."""

    menu_item_id: Optional[int]
    name: Optional[str]
    quantity: int
    unit_price_cents: int

    @property
    def line_total_cents(self) -> int:
        return self.quantity * self.unit_price_cents


@dataclass(frozen=True)
class PaymentRecord:
    order_id: int
    amount_cents: int
    method: str
    paid_at: Optional[datetime]
    payment_id: Optional[int] = None


@dataclass(frozen=True)
class DeliveryRecord:
    """Delivery with the rider snapshot taken at assignment time."""

    order_id: int
    delivery_status: str
    assigned_at: Optional[datetime] = None
    rider: Optional[PersonRecord] = None
    delivery_id: Optional[int] = None

    @property
    def rider_email(self) -> Optional[str]:
        return self.rider.email if self.rider is not None else None


@dataclass(frozen=True)
class OrderRecord:
    order_id: int
    created_at: datetime
    status: str
    total_cents: int
    restaurant: RestaurantRecord
    customer: PersonRecord
    lines: tuple[OrderLine, ...] = ()
    payment: Optional[PaymentRecord] = None
    delivery: Optional[DeliveryRecord] = None


@dataclass(frozen=True)
class OrderSummary:
    """Flattened order row used by the listings."""

    order_id: int
    created_at: datetime
    status: str
    total_cents: int
    restaurant_name: Optional[str] = None
    customer_email: Optional[str] = None
    delivery_status: Optional[str] = None
    assigned_at: Optional[datetime] = None
    rider_email: Optional[str] = None
    payment_method: Optional[str] = None


@dataclass(frozen=True)
class OrderFilters:
    customer_email: Optional[str] = None
    status: Optional[str] = None
    rider_email: Optional[str] = None
    delivery_status: Optional[str] = None
    exclude_delivered: bool = False
    limit: int = 50


# =============================================================================
# Reports
# =============================================================================


@dataclass(frozen=True)
class DateWindow:
    """Inclusive creation-date bounds; None means unbounded."""

    start: Optional[datetime] = None
    end: Optional[datetime] = None


@dataclass(frozen=True)
class GroupTotal:
    key: Optional[str]
    count: int
    amount: Decimal = Decimal("0")


@dataclass(frozen=True)
class ItemTotal:
    menu_item_id: Optional[int]
    name: Optional[str]
    quantity: int
    revenue: Decimal


@dataclass(frozen=True)
class CustomerReportData:
    """Raw aggregates for one restaurant, before rounding and formatting."""

    total_orders: int = 0
    revenue: Decimal = Decimal("0")
    paid_orders: int = 0
    by_status: list[GroupTotal] = field(default_factory=list)
    by_day: list[GroupTotal] = field(default_factory=list)
    by_payment_method: list[GroupTotal] = field(default_factory=list)
    top_items: list[ItemTotal] = field(default_factory=list)


@dataclass(frozen=True)
class RiderReportData:
    """Raw aggregates for one rider, before rounding and formatting."""

    total_deliveries: int = 0
    revenue: Decimal = Decimal("0")
    status_counts: dict[str, int] = field(
        default_factory=lambda: {status: 0 for status in DeliveryStatus.ALL}
    )
    by_day: list[GroupTotal] = field(default_factory=list)
    by_restaurant: list[GroupTotal] = field(default_factory=list)
