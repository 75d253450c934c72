"""
Reporting Domain Service.

The stores return raw aggregates (counts and unrounded Decimal sums); this
service applies the shared output rules once, so SQL and document reports
agree to the cent:

- money is a 2-decimal string, rounded half up
- averages are the rounded revenue divided by the count
- rates are 1-decimal percentage strings, "0.0" when there is nothing to count
"""

from typing import Optional

from shared.config.constants import DeliveryStatus
from shared.config.logging import mask_email, reports_logger
from shared.utils.exceptions import ValidationError
from shared.utils.money import average_money, format_money, format_rate, round_money
from shared.utils.schemas import (
    CustomerReportBreakdown,
    CustomerReportResponse,
    CustomerReportSummary,
    DayBreakdownRow,
    DeliveryStatusCounts,
    PaymentMethodBreakdownRow,
    ReportFilters,
    RiderDayRow,
    RiderReportBreakdown,
    RiderReportResponse,
    RiderReportSummary,
    RiderRestaurantRow,
    StatusBreakdownRow,
    TopItemRow,
)
from shared.utils.validators import parse_iso_datetime
from .order_store import OrderStore
from .records import DateWindow


def build_window(from_: Optional[str], to: Optional[str]) -> DateWindow:
    """Parse inclusive from/to bounds. Raises ValidationError on non-ISO input."""
    return DateWindow(
        start=parse_iso_datetime(from_, "from"),
        end=parse_iso_datetime(to, "to"),
    )


class ReportService:
    """Customer (restaurant) and rider reports over one OrderStore."""

    def __init__(self, store: OrderStore):
        self._store = store

    def customer_report(
        self,
        restaurant_name: Optional[str],
        from_: Optional[str] = None,
        to: Optional[str] = None,
    ) -> CustomerReportResponse:
        restaurant_name = (restaurant_name or "").strip()
        if not restaurant_name:
            raise ValidationError("restaurantName is required")
        window = build_window(from_, to)

        data = self._store.customer_report(restaurant_name, window)

        revenue = round_money(data.revenue)
        unpaid = data.total_orders - data.paid_orders

        reports_logger.info(
            "Customer report",
            mode=self._store.mode,
            restaurant=restaurant_name,
            orders=data.total_orders,
        )
        return CustomerReportResponse(
            mode=self._store.mode,
            restaurant_name=restaurant_name,
            filters=ReportFilters(from_=window.start, to=window.end),
            summary=CustomerReportSummary(
                total_orders=data.total_orders,
                total_revenue=format_money(revenue),
                avg_order_value=average_money(revenue, data.total_orders),
                paid_orders=data.paid_orders,
                unpaid_orders=unpaid,
                payment_rate=format_rate(data.paid_orders, data.total_orders),
            ),
            breakdown=CustomerReportBreakdown(
                by_status=[
                    StatusBreakdownRow(status=row.key, orders=row.count, revenue=format_money(row.amount))
                    for row in data.by_status
                ],
                by_day=[
                    DayBreakdownRow(date=row.key, orders=row.count, revenue=format_money(row.amount))
                    for row in data.by_day
                ],
                by_payment_method=[
                    PaymentMethodBreakdownRow(
                        method=row.key, payments=row.count, amount=format_money(row.amount)
                    )
                    for row in data.by_payment_method
                ],
                top_items=[
                    TopItemRow(
                        menu_item_id=item.menu_item_id,
                        name=item.name,
                        quantity=item.quantity,
                        revenue=format_money(item.revenue),
                    )
                    for item in data.top_items
                ],
            ),
        )

    def rider_report(
        self,
        rider_email: Optional[str],
        from_: Optional[str] = None,
        to: Optional[str] = None,
        delivery_status: Optional[str] = None,
    ) -> RiderReportResponse:
        rider_email = (rider_email or "").strip()
        if not rider_email:
            raise ValidationError("riderEmail is required")
        delivery_status = (delivery_status or "").strip() or None
        if delivery_status and delivery_status not in DeliveryStatus.ALL:
            raise ValidationError(
                f"deliveryStatus must be one of {', '.join(DeliveryStatus.ALL)}"
            )
        window = build_window(from_, to)

        data = self._store.rider_report(rider_email, window, delivery_status)

        revenue = round_money(data.revenue)
        delivered = data.status_counts.get(DeliveryStatus.DELIVERED, 0)

        reports_logger.info(
            "Rider report",
            mode=self._store.mode,
            rider=mask_email(rider_email),
            deliveries=data.total_deliveries,
        )
        return RiderReportResponse(
            mode=self._store.mode,
            rider_email=rider_email,
            filters=ReportFilters(from_=window.start, to=window.end, delivery_status=delivery_status),
            summary=RiderReportSummary(
                total_deliveries=data.total_deliveries,
                total_revenue=format_money(revenue),
                avg_order_value=average_money(revenue, data.total_deliveries),
                by_status=DeliveryStatusCounts(**data.status_counts),
                completion_rate=format_rate(delivered, data.total_deliveries),
            ),
            breakdown=RiderReportBreakdown(
                by_day=[RiderDayRow(date=row.key, deliveries=row.count) for row in data.by_day],
                by_restaurant=[
                    RiderRestaurantRow(restaurant=row.key, count=row.count)
                    for row in data.by_restaurant
                ],
            ),
        )
