"""
Application lifespan handler.
Opens the store clients on startup, keeps them on app.state and closes them
on shutdown. Clients handed in by the caller (tests, CLI) are used as-is and
left open.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from pymongo import MongoClient
from pymongo.errors import PyMongoError
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from shared.config.settings import settings
from shared.config.logging import setup_logging, rest_api_logger as logger
from shared.infrastructure.db import create_db_engine, create_session_factory
from shared.infrastructure.mongo import create_mongo_client, ensure_indexes
from rest_api.models import Base


def build_lifespan(sql_engine: Optional[Engine] = None, mongo_client: Optional[MongoClient] = None):
    """Lifespan bound to the given store clients; missing ones are created from settings."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Initialize logging
        setup_logging()

        # Validate production settings before startup
        config_errors = settings.validate_production_settings()
        if config_errors:
            for error in config_errors:
                logger.error("Configuration error", error=error)
            if settings.environment == "production":
                raise RuntimeError(
                    f"Production configuration errors: {'; '.join(config_errors)}. "
                    "Server will not start with this configuration."
                )
            logger.warning("Running with development defaults")

        logger.info("Starting REST API", port=settings.rest_api_port, env=settings.environment)

        engine = sql_engine or create_db_engine()
        client = mongo_client or create_mongo_client()

        app.state.engine = engine
        app.state.session_factory = create_session_factory(engine)
        app.state.mongo_client = client
        app.state.mongo_db = client[settings.mongodb_db]

        # Unreachable stores are reported by /api/health instead of failing startup
        try:
            Base.metadata.create_all(bind=engine)
            logger.info("Database tables created/verified")
        except SQLAlchemyError as e:
            logger.error("Relational store unavailable at startup", error=str(e))

        try:
            ensure_indexes(app.state.mongo_db)
            logger.info("Document store indexes created/verified")
        except PyMongoError as e:
            logger.error("Document store unavailable at startup", error=str(e))

        yield

        # Shutdown
        logger.info("Shutting down REST API")
        if mongo_client is None:
            client.close()
            logger.info("Document store client closed")
        if sql_engine is None:
            engine.dispose()
            logger.info("Relational connection pool disposed")

    return lifespan
