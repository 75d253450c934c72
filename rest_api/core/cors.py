"""
CORS for the demo UI.

The API is read and written by a browser front end on another port, so every
route answers preflights. Origins come from ALLOWED_ORIGINS; without it the
local dev-server ports are accepted.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shared.config.settings import settings
from shared.infrastructure.correlation import CorrelationIdMiddleware


DEV_PORTS = (5173, 3000)

# The API only has reads and POST actions
API_METHODS = ["GET", "POST", "OPTIONS"]


def dev_origins() -> list[str]:
    return [f"http://{host}:{port}" for port in DEV_PORTS for host in ("localhost", "127.0.0.1")]


def configure_cors(app: FastAPI) -> None:
    header = CorrelationIdMiddleware.HEADER_NAME
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins or dev_origins(),
        allow_credentials=False,
        allow_methods=API_METHODS,
        allow_headers=["Content-Type", "Accept", header],
        expose_headers=[header],
        # Preflights are not cached while developing
        max_age=600 if settings.environment == "production" else 0,
    )
