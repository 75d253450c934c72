"""
Centralized constants for the backend application.

Usage:
    from shared.config.constants import OrderStatus, DeliveryStatus, Limits

    if order.status == OrderStatus.CREATED:
        ...
"""

from typing import Final


# =============================================================================
# Storage Modes
# =============================================================================


class StoreMode:
    """Backing store selected by the `{mode}` path segment."""

    SQL: Final[str] = "sql"
    MONGO: Final[str] = "mongo"

    ALL: Final[list[str]] = [SQL, MONGO]


# =============================================================================
# Entity Status Constants
# =============================================================================


class OrderStatus:
    """Order status constants."""

    CREATED: Final[str] = "created"
    PREPARING: Final[str] = "preparing"
    READY: Final[str] = "ready"
    COMPLETED: Final[str] = "completed"

    ALL: Final[list[str]] = [CREATED, PREPARING, READY, COMPLETED]


class DeliveryStatus:
    """
    Delivery status constants.

    created -> assigned -> picked_up -> delivered by convention.
    The order of transitions is not enforced.
    """

    CREATED: Final[str] = "created"
    ASSIGNED: Final[str] = "assigned"
    PICKED_UP: Final[str] = "picked_up"
    DELIVERED: Final[str] = "delivered"

    ALL: Final[list[str]] = [CREATED, ASSIGNED, PICKED_UP, DELIVERED]


class PersonType:
    """Discriminator values for documents in the `people` collection."""

    CUSTOMER: Final[str] = "customer"
    RIDER: Final[str] = "rider"
    PERSON: Final[str] = "person"


PAYMENT_METHODS: Final[list[str]] = ["card", "cash", "paypal"]
VEHICLE_TYPES: Final[list[str]] = ["bike", "scooter", "car"]


# =============================================================================
# Document Store
# =============================================================================


class Collections:
    """Collection names in the document store."""

    RESTAURANTS: Final[str] = "restaurants"
    PEOPLE: Final[str] = "people"
    ORDERS: Final[str] = "orders"
    META: Final[str] = "meta"

    WORKING: Final[list[str]] = [RESTAURANTS, PEOPLE, ORDERS]


MIGRATION_MARKER_ID: Final[str] = "migration"
MIGRATION_SOURCE: Final[str] = "mariadb"


# =============================================================================
# Limits
# =============================================================================


class Limits:
    """Query and retry limits."""

    REPORT_DAYS: Final[int] = 30
    REPORT_TOP_ITEMS: Final[int] = 5
    REPORT_TOP_RESTAURANTS: Final[int] = 5

    LIST_DEFAULT: Final[int] = 50
    LIST_MIN: Final[int] = 1
    LIST_MAX: Final[int] = 200

    # Attempts to allocate a unique numeric orderId in the document store
    ORDER_ID_ATTEMPTS: Final[int] = 5
