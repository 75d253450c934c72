"""
Log correlation.

Every log record carries a correlation id and, for the per-store routes, the
store mode taken from the `/api/studentN/{mode}/...` path. HTTP requests use
the X-Request-ID header (or a fresh UUID); CLI batch jobs use `job_context`.
"""

import re
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Callable, Iterator

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from shared.config.constants import StoreMode


request_id_var: ContextVar[str] = ContextVar("request_id", default="")
store_mode_var: ContextVar[str] = ContextVar("store_mode", default="")

_MODE_PATH = re.compile(r"^/api/student\d+/(?P<mode>[a-z]+)/")


def get_request_id() -> str:
    return request_id_var.get()


def mode_from_path(path: str) -> str:
    """Store mode of a per-store route, "" for anything else."""
    match = _MODE_PATH.match(path)
    if match and match.group("mode") in StoreMode.ALL:
        return match.group("mode")
    return ""


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Binds request id and store mode for the duration of a request."""

    HEADER_NAME = "X-Request-ID"

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(self.HEADER_NAME) or str(uuid.uuid4())
        request.state.request_id = request_id

        id_token = request_id_var.set(request_id)
        mode_token = store_mode_var.set(mode_from_path(request.url.path))
        try:
            response = await call_next(request)
            response.headers[self.HEADER_NAME] = request_id
            return response
        finally:
            store_mode_var.reset(mode_token)
            request_id_var.reset(id_token)


@contextmanager
def job_context(job: str, mode: str = "") -> Iterator[str]:
    """
    Correlation id for work outside a request.

        with job_context("migrate"):
            migrate_sql_to_mongo(db, mongo_db)
    """
    job_id = f"{job}-{uuid.uuid4().hex[:8]}"
    id_token = request_id_var.set(job_id)
    mode_token = store_mode_var.set(mode)
    try:
        yield job_id
    finally:
        store_mode_var.reset(mode_token)
        request_id_var.reset(id_token)


class CorrelationIdFilter:
    """Handler filter setting `request_id` and `store_mode` on each record."""

    def filter(self, record) -> bool:
        record.request_id = request_id_var.get() or "-"
        record.store_mode = store_mode_var.get() or "-"
        return True
