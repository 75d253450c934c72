"""
Configuration module: Settings, logging, constants.
"""

from shared.config.settings import settings, get_settings, Settings
from shared.config.logging import get_logger, setup_logging
from shared.config.constants import (
    StoreMode,
    OrderStatus,
    DeliveryStatus,
    Collections,
    Limits,
)

__all__ = [
    # settings
    "settings",
    "get_settings",
    "Settings",
    # logging
    "get_logger",
    "setup_logging",
    # constants
    "StoreMode",
    "OrderStatus",
    "DeliveryStatus",
    "Collections",
    "Limits",
]
