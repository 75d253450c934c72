"""
Data administration endpoints: demo reset, migration, rider listing.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from shared.config.settings import settings
from shared.infrastructure.db import get_db
from shared.infrastructure.mongo import get_mongo_db
from shared.utils.schemas import MigrateResponse, ResetResponse, RiderListResponse, RiderOutput
from rest_api.routers._common import get_sql_store
from rest_api.services.domain import SqlOrderStore
from rest_api.services.import_reset import import_reset
from rest_api.services.migration import migrate_sql_to_mongo


router = APIRouter(prefix="/api", tags=["admin"])


@router.post("/import_reset", response_model=ResetResponse)
def reset_demo_data(
    db: Session = Depends(get_db),
    mongo_db=Depends(get_mongo_db),
) -> ResetResponse:
    """
    Reset the relational store to a fresh demo dataset.

    Also clears the document store and its migration marker. Set SEED for a
    repeatable dataset.
    """
    inserted = import_reset(db, mongo_db, seed=settings.seed)
    return ResetResponse(inserted=inserted)


@router.post("/migrate_to_mongo", response_model=MigrateResponse)
def migrate_to_mongo(
    db: Session = Depends(get_db),
    mongo_db=Depends(get_mongo_db),
) -> MigrateResponse:
    """Replace the document collections with the current relational data."""
    migrated = migrate_sql_to_mongo(db, mongo_db)
    return MigrateResponse(migrated=migrated)


@router.get("/riders", response_model=RiderListResponse)
def list_riders(store: SqlOrderStore = Depends(get_sql_store)) -> RiderListResponse:
    """Riders from the relational store, sorted by name."""
    return RiderListResponse(
        riders=[
            RiderOutput(
                rider_id=rider.person_id,
                name=rider.name,
                email=rider.email,
                vehicle_type=rider.rider.vehicle_type if rider.rider else None,
                rating=rider.rider.rating if rider.rider else None,
            )
            for rider in store.list_riders()
        ]
    )
