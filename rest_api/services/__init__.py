"""
Services module for business logic.

- domain/: order lifecycle and reports over the OrderStore port
- migration: relational snapshot -> document collections
- import_reset: relational reset and demo data generation

Usage:
    from rest_api.services.domain import OrderService, SqlOrderStore
    service = OrderService(SqlOrderStore(db))

    from rest_api.services.import_reset import import_reset
"""

from .migration import migrate_sql_to_mongo, read_sql_snapshot
from .import_reset import clear_relational, generate_demo_data

__all__ = [
    "migrate_sql_to_mongo",
    "read_sql_snapshot",
    "clear_relational",
    "generate_demo_data",
]
