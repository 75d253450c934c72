"""
Customer-side endpoints: place order, pay, restaurant report, order listing.

Every route exists once per store under /api/student1/{mode}, mode = sql | mongo.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from shared.utils.schemas import (
    CustomerReportResponse,
    OrderListResponse,
    PayRequest,
    PayResponse,
    PlaceOrderRequest,
    PlaceOrderResponse,
)
from rest_api.routers._common import get_order_service, get_report_service
from rest_api.services.domain import OrderService, ReportService


router = APIRouter(prefix="/api/student1/{mode}", tags=["orders"])


@router.post("/place_order", response_model=PlaceOrderResponse, response_model_by_alias=True)
def place_order(
    body: PlaceOrderRequest,
    service: OrderService = Depends(get_order_service),
) -> PlaceOrderResponse:
    """Create an order for a customer at a restaurant."""
    return service.place_order(body)


@router.post("/pay", response_model=PayResponse, response_model_by_alias=True)
def pay(
    body: PayRequest,
    service: OrderService = Depends(get_order_service),
) -> PayResponse:
    """Pay an order once. A second payment returns 409."""
    return service.pay(body)


@router.get("/report", response_model=CustomerReportResponse, response_model_by_alias=True)
def customer_report(
    restaurant_name: Optional[str] = Query(default=None, alias="restaurantName"),
    from_: Optional[str] = Query(default=None, alias="from"),
    to: Optional[str] = Query(default=None),
    service: ReportService = Depends(get_report_service),
) -> CustomerReportResponse:
    """KPIs and breakdowns for one restaurant, optionally within [from, to]."""
    return service.customer_report(restaurant_name, from_, to)


@router.get("/orders", response_model=OrderListResponse, response_model_by_alias=True)
def list_orders(
    customer_email: Optional[str] = Query(default=None, alias="customerEmail"),
    status: Optional[str] = Query(default=None),
    limit: Optional[int] = Query(default=None),
    service: OrderService = Depends(get_order_service),
) -> OrderListResponse:
    return service.list_orders(customer_email=customer_email, status=status, limit=limit)
