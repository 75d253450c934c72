"""
Shared Pydantic schemas used across the application.

JSON bodies use camelCase (customerEmail, orderId, ...); Python code uses
snake_case field names. Money values in responses are 2-decimal strings.
"""

from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


# =============================================================================
# Common Types
# =============================================================================

Mode = Literal["sql", "mongo"]
DeliveryStatusValue = Literal["created", "assigned", "picked_up", "delivered"]


class CamelModel(BaseModel):
    """Base model exposing camelCase aliases while accepting field names too."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ErrorResponse(BaseModel):
    """Body of every error response."""

    ok: bool = False
    error: str
    stack: Optional[str] = None


# =============================================================================
# Order Lifecycle Requests
# =============================================================================


class OrderItemInput(CamelModel):
    """
    One requested order line.

    The relational store resolves the line by menuItemId or by name and uses the
    menu price. The document store has no menu collection, so it trusts the
    caller supplied name and unitPrice.
    """

    menu_item_id: Optional[int] = Field(default=None, gt=0)
    name: Optional[str] = Field(
        default=None,
        max_length=120,
        validation_alias=AliasChoices("menuItemName", "name"),
    )
    quantity: int = Field(gt=0)
    unit_price: Optional[Decimal] = Field(default=None, ge=0)

    @field_validator("name")
    @classmethod
    def _blank_name_is_missing(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip()
        return value or None


class PlaceOrderRequest(CamelModel):
    customer_email: str = Field(min_length=1, max_length=200)
    restaurant_name: str = Field(min_length=1, max_length=120)
    items: list[OrderItemInput] = Field(min_length=1)


class PayRequest(CamelModel):
    order_id: int = Field(gt=0)
    payment_method: str = Field(min_length=1, max_length=50)


class AssignDeliveryRequest(CamelModel):
    rider_email: str = Field(min_length=1, max_length=200)
    order_id: int = Field(gt=0)
    delivery_status: DeliveryStatusValue


# =============================================================================
# Order Lifecycle Responses
# =============================================================================


class RestaurantSnapshotOutput(CamelModel):
    restaurant_id: int
    name: str
    address: Optional[str] = None


class CustomerSnapshotOutput(CamelModel):
    person_id: int
    name: str
    email: str


class OrderItemOutput(CamelModel):
    menu_item_id: Optional[int] = None
    name: Optional[str] = None
    quantity: int
    unit_price: str


class OrderOutput(CamelModel):
    order_id: int
    created_at: datetime
    status: str
    total_amount: str
    restaurant: RestaurantSnapshotOutput
    customer: CustomerSnapshotOutput
    order_items: list[OrderItemOutput]


class PlaceOrderResponse(CamelModel):
    ok: bool = True
    order: OrderOutput


class PaymentOutput(CamelModel):
    payment_id: Optional[int] = None
    amount: str
    method: str
    paid_at: datetime


class PayResponse(CamelModel):
    ok: bool = True
    order_id: int
    status: str
    payment: PaymentOutput


class DeliveryOutput(CamelModel):
    delivery_id: Optional[int] = None
    order_id: int
    rider_email: str
    delivery_status: str
    assigned_at: datetime


class AssignDeliveryResponse(CamelModel):
    ok: bool = True
    delivery: DeliveryOutput


# =============================================================================
# Listings
# =============================================================================


class OrderRowOutput(CamelModel):
    """Flattened order row, identical shape in both modes."""

    order_id: int
    created_at: datetime
    status: str
    total_amount: str
    restaurant_name: Optional[str] = None
    customer_email: Optional[str] = None
    delivery_status: Optional[str] = None
    assigned_at: Optional[datetime] = None
    rider_email: Optional[str] = None
    payment_method: Optional[str] = None


class OrderListResponse(CamelModel):
    ok: bool = True
    orders: list[OrderRowOutput]


class RiderOutput(CamelModel):
    rider_id: int
    name: str
    email: str
    vehicle_type: Optional[str] = None
    rating: Optional[float] = None


class RiderListResponse(CamelModel):
    ok: bool = True
    riders: list[RiderOutput]


# =============================================================================
# Reports
# =============================================================================


class ReportFilters(CamelModel):
    from_: Optional[datetime] = Field(default=None, alias="from")
    to: Optional[datetime] = None
    delivery_status: Optional[str] = None


class CustomerReportSummary(CamelModel):
    total_orders: int
    total_revenue: str
    avg_order_value: str
    paid_orders: int
    unpaid_orders: int
    payment_rate: str


class StatusBreakdownRow(CamelModel):
    status: str
    orders: int
    revenue: str


class DayBreakdownRow(CamelModel):
    date: str
    orders: int
    revenue: str


class PaymentMethodBreakdownRow(CamelModel):
    method: Optional[str] = None
    payments: int
    amount: str


class TopItemRow(CamelModel):
    menu_item_id: Optional[int] = None
    name: Optional[str] = None
    quantity: int
    revenue: str


class CustomerReportBreakdown(CamelModel):
    by_status: list[StatusBreakdownRow]
    by_day: list[DayBreakdownRow]
    by_payment_method: list[PaymentMethodBreakdownRow]
    top_items: list[TopItemRow]


class CustomerReportResponse(CamelModel):
    ok: bool = True
    mode: Mode
    restaurant_name: str
    filters: ReportFilters
    summary: CustomerReportSummary
    breakdown: CustomerReportBreakdown


class DeliveryStatusCounts(BaseModel):
    created: int = 0
    assigned: int = 0
    picked_up: int = 0
    delivered: int = 0


class RiderReportSummary(CamelModel):
    total_deliveries: int
    total_revenue: str
    avg_order_value: str
    by_status: DeliveryStatusCounts
    completion_rate: str


class RiderDayRow(CamelModel):
    date: str
    deliveries: int


class RiderRestaurantRow(CamelModel):
    restaurant: Optional[str] = None
    count: int


class RiderReportBreakdown(CamelModel):
    by_day: list[RiderDayRow]
    by_restaurant: list[RiderRestaurantRow]


class RiderReportResponse(CamelModel):
    ok: bool = True
    mode: Mode
    rider_email: str
    filters: ReportFilters
    summary: RiderReportSummary
    breakdown: RiderReportBreakdown


# =============================================================================
# Admin
# =============================================================================


class ResetResponse(CamelModel):
    ok: bool = True
    inserted: dict[str, int]


class MigrateResponse(CamelModel):
    ok: bool = True
    migrated: dict[str, int]


class HealthResponse(CamelModel):
    ok: bool
    status: str
    sql: dict
    mongo: dict
    active_mode: Mode
    environment: str
