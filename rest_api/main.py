"""
REST API main application.
Entry point for the FastAPI REST server.

    uvicorn rest_api.main:app --port 3000
"""

from typing import Optional

from fastapi import FastAPI
from pymongo import MongoClient
from sqlalchemy.engine import Engine

from rest_api.core.cors import configure_cors
from rest_api.core.errors import register_exception_handlers
from rest_api.core.lifespan import build_lifespan
from rest_api.routers.admin import router as admin_router
from rest_api.routers.deliveries import router as deliveries_router
from rest_api.routers.orders import router as orders_router
from rest_api.routers.public import health_router
from shared.infrastructure.correlation import CorrelationIdMiddleware


def create_app(
    sql_engine: Optional[Engine] = None,
    mongo_client: Optional[MongoClient] = None,
) -> FastAPI:
    """
    Build the application.

    Store clients passed in are used instead of the ones configured in
    settings and are not closed on shutdown.
    """
    app = FastAPI(
        title="Food Ordering Dual-Store API",
        description="Orders, payments, deliveries and reports over a relational and a document store",
        version="1.0.0",
        lifespan=build_lifespan(sql_engine, mongo_client),
    )

    register_exception_handlers(app)

    # Middleware order: last added runs first
    app.add_middleware(CorrelationIdMiddleware)
    configure_cors(app)

    app.include_router(health_router)
    app.include_router(orders_router)
    app.include_router(deliveries_router)
    app.include_router(admin_router)

    return app


app = create_app()
