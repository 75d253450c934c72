"""
Health check endpoint for the REST API.

Reports connectivity of both stores and the active mode: "mongo" once a
migration marker exists and the orders collection is not empty, "sql" otherwise.
"""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pymongo.database import Database
from sqlalchemy import text
from sqlalchemy.engine import Engine

from shared.config.constants import Collections, MIGRATION_MARKER_ID, StoreMode
from shared.config.settings import settings
from shared.utils.health import HealthStatus, overall_status, sync_health_check_with_timeout
from shared.utils.schemas import HealthResponse


router = APIRouter(prefix="/api", tags=["health"])


@sync_health_check_with_timeout(timeout=3.0, component="sql")
def check_sql_health(engine: Engine) -> dict:
    """Check relational store connectivity."""
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
    return {"dialect": engine.dialect.name}


@sync_health_check_with_timeout(timeout=3.0, component="mongo")
def check_mongo_health(mongo_db: Database) -> dict:
    """Check document store connectivity and the migration state."""
    mongo_db.command("ping")
    marker = mongo_db[Collections.META].find_one({"_id": MIGRATION_MARKER_ID})
    orders = mongo_db[Collections.ORDERS].count_documents({})
    return {
        "database": mongo_db.name,
        "migrated": marker is not None,
        "orders": orders,
        "lastMigrationAt": marker.get("lastMigrationAt").isoformat()
        if marker and marker.get("lastMigrationAt")
        else None,
    }


def detect_active_mode(mongo_details: dict) -> str:
    if mongo_details.get("migrated") and mongo_details.get("orders", 0) > 0:
        return StoreMode.MONGO
    return StoreMode.SQL


@router.get("/health", response_model=HealthResponse)
def health_check(request: Request):
    """
    Store connectivity and active mode.

    Returns 503 when either store is unreachable.
    """
    sql_result = check_sql_health(request.app.state.engine)
    mongo_result = check_mongo_health(request.app.state.mongo_db)

    status = overall_status([sql_result, mongo_result])

    body = HealthResponse(
        ok=status == HealthStatus.HEALTHY,
        status=status.value,
        sql=sql_result.to_dict(),
        mongo=mongo_result.to_dict(),
        active_mode=detect_active_mode(mongo_result.details) if mongo_result.healthy else StoreMode.SQL,
        environment=settings.environment,
    )
    if not body.ok:
        return JSONResponse(status_code=503, content=body.model_dump(mode="json", by_alias=True))
    return body
