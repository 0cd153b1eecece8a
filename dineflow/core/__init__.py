"""
Core module initialization.
Exports configuration, logging utilities and the error hierarchy.
"""

from dineflow.core.config import get_settings, Settings, EnvironmentMode, StorageBackend
from dineflow.core.exceptions import (
    OrderServiceError,
    InvalidOrder,
    OrderNotFound,
    InvalidTransition,
    StoreError,
)

__all__ = [
    "get_settings",
    "Settings",
    "EnvironmentMode",
    "StorageBackend",
    "OrderServiceError",
    "InvalidOrder",
    "OrderNotFound",
    "InvalidTransition",
    "StoreError",
]
