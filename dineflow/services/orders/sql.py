"""
SQL Order Store Implementation

Production implementation using SQLAlchemy's async engine (PostgreSQL via
psycopg in production, SQLite via aiosqlite in tests).

Atomicity:
    - Order numbers come from a single ``UPDATE ... RETURNING`` on the
      ``order_counters`` row, so concurrent workers never share a number
    - Status updates lock the order row (``SELECT ... FOR UPDATE``) and run
      the mutator inside the same transaction

Author: Khalil Bannouri
Version: 1.0.0
"""

import json
import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from dineflow.core.exceptions import OrderNotFound, StoreError
from dineflow.database import build_session_maker, init_db
from dineflow.models import OrderCounter, OrderRecord, OrderStatus
from dineflow.services.orders.base import BaseOrderStore, LineItem, Order, OrderMutator

logger = logging.getLogger(__name__)

ORDER_NUMBER_COUNTER = "orderNumber"


def _aware(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _to_order(record: OrderRecord) -> Order:
    return Order(
        id=record.id,
        order_number=record.order_number,
        table_number=record.table_number,
        items=tuple(LineItem.from_dict(item) for item in json.loads(record.items)),
        total=record.total,
        status=OrderStatus(record.status),
        created_at=_aware(record.created_at),
        updated_at=_aware(record.updated_at),
        customer_name=record.customer_name,
        notes=record.notes,
    )


def _to_record(order: Order) -> OrderRecord:
    return OrderRecord(
        id=order.id,
        order_number=order.order_number,
        table_number=order.table_number,
        customer_name=order.customer_name,
        notes=order.notes,
        items=json.dumps([item.to_dict() for item in order.items]),
        total=order.total,
        status=order.status,
        created_at=order.created_at,
        updated_at=order.updated_at,
    )


class SqlOrderStore(BaseOrderStore):
    """
    Order store persisted through SQLAlchemy.

    Attributes:
        engine: Async engine owned by this store (disposed on close)
        seed: Order number handed to the first order of a fresh database
    """

    def __init__(self, engine: AsyncEngine, seed: int = 101):
        self.engine = engine
        self.seed = seed
        self._session_maker = build_session_maker(engine)

        logger.info(f"SqlOrderStore initialized ({engine.url.render_as_string(hide_password=True)})")

    @property
    def backend_name(self) -> str:
        return "database"

    async def start(self) -> None:
        """Create tables and make sure the order-number counter row exists."""
        try:
            await init_db(self.engine)
            async with self._session_maker() as session:
                counter = await session.get(OrderCounter, ORDER_NUMBER_COUNTER)
                if counter is None:
                    session.add(OrderCounter(name=ORDER_NUMBER_COUNTER, value=self.seed - 1))
                    try:
                        await session.commit()
                        logger.info(f"Created order counter (first order will be #{self.seed})")
                    except IntegrityError:
                        # Another worker created it first
                        await session.rollback()
        except SQLAlchemyError as e:
            raise StoreError(f"Could not initialise order store: {e}") from e

    async def close(self) -> None:
        await self.engine.dispose()

    async def allocate_order_number(self) -> int:
        stmt = (
            update(OrderCounter)
            .where(OrderCounter.name == ORDER_NUMBER_COUNTER)
            .values(value=OrderCounter.value + 1)
            .returning(OrderCounter.value)
            .execution_options(synchronize_session=False)
        )
        try:
            async with self._session_maker() as session:
                async with session.begin():
                    result = await session.execute(stmt)
                    value = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise StoreError(f"Could not allocate order number: {e}") from e

        if value is None:
            raise StoreError("Order counter missing; was the store started?")
        return value

    async def insert(self, order: Order) -> Order:
        try:
            async with self._session_maker() as session:
                session.add(_to_record(order))
                await session.commit()
        except IntegrityError as e:
            raise StoreError(
                f"Order '{order.id}' already exists",
                {"order_id": order.id},
            ) from e
        except SQLAlchemyError as e:
            raise StoreError(f"Could not save order: {e}") from e

        logger.debug(f"Stored order #{order.order_number} ({order.id})")
        return order

    async def get(self, order_id: str) -> Order:
        try:
            async with self._session_maker() as session:
                record = await session.get(OrderRecord, order_id)
        except SQLAlchemyError as e:
            raise StoreError(f"Could not load order: {e}") from e

        if record is None:
            raise OrderNotFound(order_id)
        return _to_order(record)

    async def list(self, status: Optional[OrderStatus] = None) -> List[Order]:
        query = select(OrderRecord).order_by(OrderRecord.order_number.desc())
        if status is not None:
            query = query.where(OrderRecord.status == status)

        try:
            async with self._session_maker() as session:
                result = await session.execute(query)
                records = result.scalars().all()
        except SQLAlchemyError as e:
            raise StoreError(f"Could not list orders: {e}") from e

        return [_to_order(record) for record in records]

    async def update(self, order_id: str, mutator: OrderMutator) -> Order:
        query = select(OrderRecord).where(OrderRecord.id == order_id).with_for_update()
        try:
            async with self._session_maker() as session:
                async with session.begin():
                    result = await session.execute(query)
                    record = result.scalar_one_or_none()
                    if record is None:
                        raise OrderNotFound(order_id)

                    updated = mutator(_to_order(record))
                    record.status = updated.status
                    record.updated_at = updated.updated_at
        except SQLAlchemyError as e:
            raise StoreError(f"Could not update order: {e}") from e

        return updated

    async def health_check(self) -> bool:
        try:
            async with self._session_maker() as session:
                await session.execute(select(1))
            return True
        except SQLAlchemyError as e:
            logger.error(f"Order store health check failed: {e}")
            return False
