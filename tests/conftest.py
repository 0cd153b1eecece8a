"""
Shared fixtures for the DineFlow test suite.

The API is always exercised against the in-memory order store with the
ledger export switched off, so no database, Redis or Celery worker is needed.
"""

import os

os.environ.setdefault("STORAGE_BACKEND", "memory")
os.environ.setdefault("LEDGER_EXPORT_ENABLED", "false")
os.environ.setdefault("ENV_MODE", "development")

import pytest

from dineflow.services.broadcaster import EventBroadcaster
from dineflow.services.lifecycle import OrderLifecycleEngine
from dineflow.services.orders import InMemoryOrderStore, LineItem


def make_items(*lines):
    """Build line items from (price, quantity) pairs."""
    return [
        LineItem(item_id=str(i + 1), name=f"Dish {i + 1}", price=price, quantity=quantity)
        for i, (price, quantity) in enumerate(lines)
    ]


@pytest.fixture
def store():
    return InMemoryOrderStore(seed=101)


@pytest.fixture
def broadcaster():
    return EventBroadcaster(keepalive_interval=0.05, queue_size=10)


@pytest.fixture
def engine(store, broadcaster):
    return OrderLifecycleEngine(store, broadcaster)


@pytest.fixture
def sample_items():
    # 100 x 2 + 50 x 1 = 250
    return make_items((100, 2), (50, 1))


@pytest.fixture
def items_factory():
    return make_items
