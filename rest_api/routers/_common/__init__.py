"""
Common dependencies shared across routers.
"""

from .stores import (
    get_order_store,
    get_order_service,
    get_report_service,
    get_sql_store,
)

__all__ = [
    "get_order_store",
    "get_order_service",
    "get_report_service",
    "get_sql_store",
]
