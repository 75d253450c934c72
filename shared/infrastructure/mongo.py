"""
Document store client and index management.

The client is built once at startup (see rest_api.core.lifespan), stored on
app.state and closed on shutdown.
"""

from fastapi import Request
from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.database import Database

from shared.config.constants import Collections, MIGRATION_MARKER_ID
from shared.config.logging import get_logger
from shared.config.settings import settings

logger = get_logger(__name__)


def create_mongo_client(uri: str | None = None) -> MongoClient:
    """Create a client; connections are opened lazily by pymongo."""
    return MongoClient(
        uri or settings.mongodb_uri,
        serverSelectionTimeoutMS=settings.mongodb_timeout_ms,
        tz_aware=False,
    )


def get_mongo_db(request: Request) -> Database:
    """FastAPI dependency returning the configured document database."""
    return request.app.state.mongo_db


def ensure_indexes(db: Database) -> None:
    """
    Create the indexes the API relies on.

    Unique indexes make orderId allocation, restaurant names and person emails
    safe under concurrent writers. The compound ones back the two reports.
    """
    orders = db[Collections.ORDERS]
    orders.create_index(
        [("orderId", ASCENDING)], name="idx_orders_orderId_unique", unique=True
    )
    orders.create_index(
        [("restaurant.name", ASCENDING), ("createdAt", DESCENDING)],
        name="idx_orders_restaurant_report",
    )
    orders.create_index(
        [
            ("delivery.rider.email", ASCENDING),
            ("delivery.deliveryStatus", ASCENDING),
            ("createdAt", DESCENDING),
        ],
        name="idx_orders_rider_report",
    )

    db[Collections.PEOPLE].create_index(
        [("email", ASCENDING)], name="idx_people_email_unique", unique=True
    )
    db[Collections.RESTAURANTS].create_index(
        [("name", ASCENDING)], name="idx_restaurants_name_unique", unique=True
    )
    logger.debug("Document store indexes verified")


def clear_working_collections(db: Database) -> None:
    """
    Remove all documents from the working collections and the migration marker.

    Used after a relational reset so a stale "migrated" signal cannot outlive it.
    """
    for name in Collections.WORKING:
        db[name].delete_many({})
    db[Collections.META].delete_one({"_id": MIGRATION_MARKER_ID})
