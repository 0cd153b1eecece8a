"""
Order Store Tests

Both backends are run through the same contract tests. The SQL store uses
SQLite through aiosqlite in a temporary directory.

Run with: pytest tests/test_order_store.py -v
"""

import asyncio
import uuid
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine

from dineflow.core.config import Settings, StorageBackend
from dineflow.core.exceptions import InvalidTransition, OrderNotFound, StoreError
from dineflow.models import OrderStatus
from dineflow.services.broadcaster import EventBroadcaster
from dineflow.services.lifecycle import OrderLifecycleEngine
from dineflow.services.orders import (
    InMemoryOrderStore,
    LineItem,
    Order,
    SqlOrderStore,
    build_order_store,
)

BASE_TIME = datetime(2026, 3, 14, 18, 30, tzinfo=timezone.utc)


def make_order(order_number, status=OrderStatus.NEW, order_id=None):
    items = (LineItem(item_id="5", name="Butter Chicken", price=320, quantity=2),)
    created = BASE_TIME + timedelta(minutes=order_number)
    return Order(
        id=order_id or uuid.uuid4().hex,
        order_number=order_number,
        table_number=3,
        items=items,
        total=640,
        status=status,
        created_at=created,
        updated_at=created,
        customer_name="Ravi",
        notes="No onions",
    )


@pytest_asyncio.fixture(params=["memory", "database"])
async def order_store(request, tmp_path):
    if request.param == "memory":
        store = InMemoryOrderStore(seed=101)
    else:
        engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path}/orders.db")
        store = SqlOrderStore(engine, seed=101)
    await store.start()
    yield store
    await store.close()


@pytest.mark.asyncio
class TestOrderStoreContract:
    """Behaviour every backend must share."""

    async def test_numbers_start_at_seed(self, order_store):
        assert await order_store.allocate_order_number() == 101
        assert await order_store.allocate_order_number() == 102
        assert await order_store.allocate_order_number() == 103

    async def test_concurrent_creations_are_numbered_without_gaps(self, order_store):
        """
        CRITICAL: 20 orders placed at once through the engine.

        Expected: numbers are exactly 101..120 on every backend.
        """
        engine = OrderLifecycleEngine(order_store, EventBroadcaster())
        items = [LineItem(item_id="1", name="Paneer Tikka", price=220, quantity=1)]

        orders = await asyncio.gather(*[engine.create_order(items) for _ in range(20)])

        assert sorted(o.order_number for o in orders) == list(range(101, 121))
        assert [o.order_number for o in await order_store.list()] == list(range(120, 100, -1))

    async def test_insert_and_get(self, order_store):
        order = make_order(101)
        await order_store.insert(order)

        loaded = await order_store.get(order.id)

        assert loaded == order
        assert loaded.items[0].line_total == 640
        assert loaded.created_at.tzinfo is not None

    async def test_duplicate_id_is_store_error(self, order_store):
        order = make_order(101)
        await order_store.insert(order)

        with pytest.raises(StoreError):
            await order_store.insert(make_order(102, order_id=order.id))

    async def test_get_unknown(self, order_store):
        with pytest.raises(OrderNotFound) as exc_info:
            await order_store.get("nope")

        assert exc_info.value.details == {"order_id": "nope"}

    async def test_list_newest_first(self, order_store):
        for number in (101, 102, 103):
            await order_store.insert(make_order(number))

        assert [o.order_number for o in await order_store.list()] == [103, 102, 101]

    async def test_list_filtered(self, order_store):
        await order_store.insert(make_order(101, OrderStatus.READY))
        await order_store.insert(make_order(102, OrderStatus.NEW))
        await order_store.insert(make_order(103, OrderStatus.READY))

        ready = await order_store.list(OrderStatus.READY)

        assert [o.order_number for o in ready] == [103, 101]
        assert await order_store.list(OrderStatus.COMPLETED) == []

    async def test_update_applies_mutator(self, order_store):
        order = make_order(101)
        await order_store.insert(order)
        later = order.updated_at + timedelta(minutes=5)

        updated = await order_store.update(
            order.id, lambda current: current.with_status(OrderStatus.PREPARING, later)
        )

        assert updated.status == OrderStatus.PREPARING
        stored = await order_store.get(order.id)
        assert stored.status == OrderStatus.PREPARING
        assert stored.updated_at == later
        assert stored.created_at == order.created_at

    async def test_failing_mutator_leaves_order_untouched(self, order_store):
        order = make_order(101)
        await order_store.insert(order)

        def reject(current):
            raise InvalidTransition(current.status.value, "ready")

        with pytest.raises(InvalidTransition):
            await order_store.update(order.id, reject)

        assert await order_store.get(order.id) == order

    async def test_update_unknown(self, order_store):
        with pytest.raises(OrderNotFound):
            await order_store.update("nope", lambda current: current)

    async def test_health_check(self, order_store):
        assert await order_store.health_check() is True


@pytest.mark.asyncio
class TestSqlOrderStore:
    """SQL-specific behaviour."""

    async def test_counter_survives_restart(self, tmp_path):
        url = f"sqlite+aiosqlite:///{tmp_path}/orders.db"

        first = SqlOrderStore(create_async_engine(url), seed=101)
        await first.start()
        assert await first.allocate_order_number() == 101
        assert await first.allocate_order_number() == 102
        await first.close()

        second = SqlOrderStore(create_async_engine(url), seed=101)
        await second.start()
        assert await second.allocate_order_number() == 103
        await second.close()

    async def test_unstarted_store_reports_store_error(self, tmp_path):
        store = SqlOrderStore(create_async_engine(f"sqlite+aiosqlite:///{tmp_path}/empty.db"))

        with pytest.raises(StoreError):
            await store.list()
        with pytest.raises(StoreError):
            await store.allocate_order_number()

        await store.close()


class TestBuildOrderStore:
    """Test backend selection from settings."""

    def test_memory_backend(self):
        store = build_order_store(Settings(storage_backend="memory", order_number_seed=500))

        assert isinstance(store, InMemoryOrderStore)
        assert store.seed == 500
        assert store.backend_name == "memory"

    def test_database_backend(self, tmp_path):
        settings = Settings(
            storage_backend=StorageBackend.DATABASE,
            database_url=f"sqlite+aiosqlite:///{tmp_path}/orders.db",
        )

        store = build_order_store(settings)

        assert isinstance(store, SqlOrderStore)
        assert store.backend_name == "database"
