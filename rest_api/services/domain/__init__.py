"""
Domain Services.

Structure:
    Router (thin controller)
        ↓
    Service (validation, money rules, logging)  ← OrderService, ReportService
        ↓
    OrderStore (storage port)                   ← SqlOrderStore, MongoOrderStore
        ↓
    Store (SQLAlchemy models / pymongo collections)

Usage:
    from rest_api.services.domain import OrderService, SqlOrderStore

    service = OrderService(SqlOrderStore(db))
    response = service.pay(body)
"""

from .order_store import OrderStore
from .sql_store import SqlOrderStore
from .mongo_store import MongoOrderStore
from .order_service import OrderService
from .report_service import ReportService

__all__ = [
    "OrderStore",
    "SqlOrderStore",
    "MongoOrderStore",
    "OrderService",
    "ReportService",
]
