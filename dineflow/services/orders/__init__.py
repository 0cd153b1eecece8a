"""
Order Store Factory

Provides a single entry point for building the order store.
The rest of the application only sees BaseOrderStore and stays agnostic
about which backend is in use.

Usage:
    from dineflow.services.orders import build_order_store

    store = build_order_store(settings)
    await store.start()

Backend Switching:
    - STORAGE_BACKEND=memory → InMemoryOrderStore (no database)
    - STORAGE_BACKEND=database → SqlOrderStore (DATABASE_URL)

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging

from dineflow.core.config import Settings
from dineflow.services.orders.base import (
    BaseOrderStore,
    LineItem,
    Order,
    OrderMutator,
)
from dineflow.services.orders.memory import InMemoryOrderStore
from dineflow.services.orders.sql import SqlOrderStore

logger = logging.getLogger(__name__)


def build_order_store(settings: Settings) -> BaseOrderStore:
    """
    Build the order store described by the settings.

    A new instance is returned on every call; the application lifespan
    owns the one it builds.

    Returns:
        BaseOrderStore: Configured (not yet started) order store
    """
    if settings.use_database_store:
        from dineflow.database import build_engine

        logger.info("Order Store: Using SqlOrderStore")
        return SqlOrderStore(build_engine(settings), seed=settings.order_number_seed)

    logger.info("Order Store: Using InMemoryOrderStore")
    return InMemoryOrderStore(seed=settings.order_number_seed)


__all__ = [
    "build_order_store",
    "BaseOrderStore",
    "InMemoryOrderStore",
    "SqlOrderStore",
    "LineItem",
    "Order",
    "OrderMutator",
]
