"""
Utilities module: Exceptions, validators, money helpers, schemas.
"""

from shared.utils.exceptions import (
    AppException,
    NotFoundError,
    ValidationError,
    ConflictError,
    InternalError,
)
from shared.utils.validators import (
    utc_now,
    parse_iso_datetime,
    clamp_limit,
)
from shared.utils.schemas import ErrorResponse

__all__ = [
    # exceptions
    "AppException",
    "NotFoundError",
    "ValidationError",
    "ConflictError",
    "InternalError",
    # validators
    "utc_now",
    "parse_iso_datetime",
    "clamp_limit",
    # schemas
    "ErrorResponse",
]
