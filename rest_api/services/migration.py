"""
Relational -> document migration.

Reads the whole relational dataset, reshapes it into the `restaurants`,
`people` and `orders` collections, replaces their contents and upserts the
`meta` migration marker.

The replace is clear-then-insert: documents written in mongo mode since the
previous migration are overwritten, and a failure after the clear leaves the
collections partially filled until the next run.
"""

from dataclasses import dataclass

from pymongo.database import Database
from sqlalchemy import select
from sqlalchemy.orm import Session

from shared.config.constants import Collections, MIGRATION_MARKER_ID, MIGRATION_SOURCE
from shared.config.logging import migration_logger as logger
from shared.infrastructure.mongo import ensure_indexes
from shared.utils.validators import utc_now
from rest_api.models import Order, Person, Restaurant
from rest_api.services.domain.mongo_store import (
    order_document,
    person_document,
    restaurant_document,
)
from rest_api.services.domain.records import OrderRecord, PersonRecord, RestaurantRecord
from rest_api.services.domain.sql_store import (
    ORDER_LOAD_OPTIONS,
    PERSON_LOAD_OPTIONS,
    order_record,
    person_record,
    restaurant_record,
)


@dataclass(frozen=True)
class SqlSnapshot:
    restaurants: list[RestaurantRecord]
    people: list[PersonRecord]
    orders: list[OrderRecord]


def read_sql_snapshot(db: Session) -> SqlSnapshot:
    """Load every restaurant, person and order (with lines, payment, delivery) by id."""
    db.expire_all()
    restaurants = db.scalars(select(Restaurant).order_by(Restaurant.restaurant_id)).all()
    people = db.scalars(
        select(Person).options(*PERSON_LOAD_OPTIONS).order_by(Person.person_id)
    ).all()
    orders = db.scalars(
        select(Order).options(*ORDER_LOAD_OPTIONS).order_by(Order.order_id)
    ).all()
    return SqlSnapshot(
        restaurants=[restaurant_record(r) for r in restaurants],
        people=[person_record(p) for p in people],
        orders=[order_record(o) for o in orders],
    )


def migrate_sql_to_mongo(db: Session, mongo_db: Database) -> dict[str, int]:
    """
    Replace the document collections with a transform of the relational data.

    Running it twice without writes in between produces the same documents.

    Returns:
        Migrated counts per collection.
    """
    snapshot = read_sql_snapshot(db)

    documents = {
        Collections.RESTAURANTS: [restaurant_document(r) for r in snapshot.restaurants],
        Collections.PEOPLE: [person_document(p) for p in snapshot.people],
        Collections.ORDERS: [order_document(o) for o in snapshot.orders],
    }

    for name in Collections.WORKING:
        mongo_db[name].delete_many({})
    for name, docs in documents.items():
        if docs:
            mongo_db[name].insert_many(docs)

    ensure_indexes(mongo_db)

    counts = {name: len(docs) for name, docs in documents.items()}
    mongo_db[Collections.META].update_one(
        {"_id": MIGRATION_MARKER_ID},
        {
            "$set": {
                "source": MIGRATION_SOURCE,
                "lastMigrationAt": utc_now(),
                "migrated": counts,
            }
        },
        upsert=True,
    )

    logger.info("Migration completed", **counts)
    return counts
