"""
Rider-side endpoints: assign delivery, rider report, delivery listing.

Every route exists once per store under /api/student2/{mode}, mode = sql | mongo.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from shared.utils.schemas import (
    AssignDeliveryRequest,
    AssignDeliveryResponse,
    OrderListResponse,
    RiderReportResponse,
)
from rest_api.routers._common import get_order_service, get_report_service
from rest_api.services.domain import OrderService, ReportService


router = APIRouter(prefix="/api/student2/{mode}", tags=["deliveries"])


@router.post(
    "/assign_delivery", response_model=AssignDeliveryResponse, response_model_by_alias=True
)
def assign_delivery(
    body: AssignDeliveryRequest,
    service: OrderService = Depends(get_order_service),
) -> AssignDeliveryResponse:
    """
    Assign a rider to an order or update the delivery status.

    assignedAt is set by the first assignment and kept afterwards.
    """
    return service.assign_delivery(body)


@router.get("/report", response_model=RiderReportResponse, response_model_by_alias=True)
def rider_report(
    rider_email: Optional[str] = Query(default=None, alias="riderEmail"),
    from_: Optional[str] = Query(default=None, alias="from"),
    to: Optional[str] = Query(default=None),
    delivery_status: Optional[str] = Query(default=None, alias="deliveryStatus"),
    service: ReportService = Depends(get_report_service),
) -> RiderReportResponse:
    return service.rider_report(rider_email, from_, to, delivery_status)


@router.get("/orders", response_model=OrderListResponse, response_model_by_alias=True)
def list_delivery_orders(
    status: Optional[str] = Query(default=None),
    rider_email: Optional[str] = Query(default=None, alias="riderEmail"),
    delivery_status: Optional[str] = Query(default=None, alias="deliveryStatus"),
    exclude_delivered: bool = Query(default=False, alias="excludeDelivered"),
    limit: Optional[int] = Query(default=None),
    service: OrderService = Depends(get_order_service),
) -> OrderListResponse:
    """Orders for the delivery view, e.g. excludeDelivered=true for open work."""
    return service.list_orders(
        status=status,
        rider_email=rider_email,
        delivery_status=delivery_status,
        exclude_delivered=exclude_delivered,
        limit=limit,
    )
