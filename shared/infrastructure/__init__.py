"""
Infrastructure module: relational and document store clients.

Provides:
- Engine/session construction and transactions (db.py)
- MongoClient construction and index management (mongo.py)
- Request correlation IDs (correlation.py)
"""

from shared.infrastructure.db import (
    create_db_engine,
    create_session_factory,
    get_db,
    get_db_context,
    transaction,
)
from shared.infrastructure.mongo import (
    create_mongo_client,
    get_mongo_db,
    ensure_indexes,
    clear_working_collections,
)

__all__ = [
    # db
    "create_db_engine",
    "create_session_factory",
    "get_db",
    "get_db_context",
    "transaction",
    # mongo
    "create_mongo_client",
    "get_mongo_db",
    "ensure_indexes",
    "clear_working_collections",
]
