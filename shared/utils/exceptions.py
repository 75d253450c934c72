"""
Error taxonomy shared by both stores.

Each class fixes an HTTP status and the level it logs at when raised, so the
same failure reads the same in sql and mongo mode:

    ValidationError        400  missing or malformed input
    AmbiguousMenuItemError 400  a name matches several menu rows
    NotFoundError          404  unknown email, restaurant or order id
    ConflictError          409  e.g. paying an order twice
    InternalError          500  store failures the caller cannot fix

    raise NotFoundError("Rider", "rider1@example.com", mode="sql")
    raise ValidationError("items must be a non-empty array")

Keyword arguments are log context only; they never reach the response body.
"""

from typing import Any

from fastapi import HTTPException, status

from shared.config.logging import get_logger

logger = get_logger(__name__)


class AppException(HTTPException):
    """HTTPException that logs itself once, at `log_level`, when created."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    log_level: str = "warning"

    def __init__(self, detail: str, **log_context: Any):
        getattr(logger, self.log_level)(detail, status_code=self.status_code, **log_context)
        super().__init__(status_code=self.status_code, detail=detail)

    def __str__(self) -> str:
        return str(self.detail)


class ValidationError(AppException):
    status_code = status.HTTP_400_BAD_REQUEST


class AmbiguousMenuItemError(ValidationError):
    def __init__(self, name: str, restaurant: str, matches: int, **log_context: Any):
        super().__init__(
            f"menu item name '{name}' is ambiguous in restaurant '{restaurant}' "
            f"({matches} matches); use menuItemId",
            menu_item=name,
            restaurant=restaurant,
            **log_context,
        )


class NotFoundError(AppException):
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, entity: str, identifier: int | str | None = None, **log_context: Any):
        detail = f"{entity} not found" if identifier is None else f"{entity} '{identifier}' not found"
        super().__init__(detail, entity=entity, identifier=identifier, **log_context)


class OrderNotFoundError(NotFoundError):
    def __init__(self, order_id: int, **log_context: Any):
        super().__init__("Order", order_id, **log_context)


class ConflictError(AppException):
    status_code = status.HTTP_409_CONFLICT


class AlreadyPaidError(ConflictError):
    def __init__(self, order_id: int, **log_context: Any):
        super().__init__(f"order {order_id} already paid", order_id=order_id, **log_context)


class InternalError(AppException):
    log_level = "error"

    def __init__(self, detail: str = "internal error", **log_context: Any):
        super().__init__(detail, **log_context)
