"""
Store selection for the `{mode}` path segment.

Usage:
    @router.post("/pay")
    def pay(body: PayRequest, service: OrderService = Depends(get_order_service)):
        return service.pay(body)
"""

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from shared.config.constants import StoreMode
from shared.infrastructure.db import get_db
from shared.utils.schemas import Mode
from rest_api.services.domain import (
    MongoOrderStore,
    OrderService,
    OrderStore,
    ReportService,
    SqlOrderStore,
)


def get_order_store(
    mode: Mode,
    request: Request,
    db: Session = Depends(get_db),
) -> OrderStore:
    """Adapter for the requested mode. Unknown modes fail path validation (400)."""
    if mode == StoreMode.MONGO:
        return MongoOrderStore(request.app.state.mongo_db)
    return SqlOrderStore(db)


def get_sql_store(db: Session = Depends(get_db)) -> SqlOrderStore:
    return SqlOrderStore(db)


def get_order_service(store: OrderStore = Depends(get_order_store)) -> OrderService:
    return OrderService(store)


def get_report_service(store: OrderStore = Depends(get_order_store)) -> ReportService:
    return ReportService(store)
