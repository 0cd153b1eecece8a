"""
SQLAlchemy Database Models

Tables backing the SQL order store:
- orders: one row per order, line items kept as a JSON string snapshot
- order_counters: named monotonic sequences (order numbers)

Author: Khalil Bannouri
Version: 1.0.0
"""

import enum

from sqlalchemy import Column, Integer, String, DateTime, Text, Enum
from dineflow.database import Base


class OrderStatus(str, enum.Enum):
    """Order status workflow."""
    NEW = "new"
    PREPARING = "preparing"
    READY = "ready"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


ACTIVE_STATUSES = (OrderStatus.NEW, OrderStatus.PREPARING, OrderStatus.READY)


class OrderRecord(Base):
    """
    Main Order table - stores every order placed from a table or takeaway.

    Rows are never deleted; only status and updated_at change after insert.
    """
    __tablename__ = "orders"

    # Primary Key
    id = Column(String(32), primary_key=True)

    # =========================================================================
    # IDENTIFICATION
    # =========================================================================
    order_number = Column(Integer, nullable=False, unique=True, index=True)
    table_number = Column(Integer, nullable=False, default=0)
    customer_name = Column(String(100), nullable=False, default="Guest")
    notes = Column(Text, nullable=False, default="")

    # =========================================================================
    # ORDER DETAILS
    # =========================================================================
    items = Column(Text, nullable=False)  # JSON string of line items
    total = Column(Integer, nullable=False)

    # =========================================================================
    # ORDER STATUS
    # =========================================================================
    status = Column(
        Enum(OrderStatus, values_callable=lambda e: [s.value for s in e]),
        default=OrderStatus.NEW,
        nullable=False,
        index=True
    )

    # =========================================================================
    # TIMESTAMPS
    # =========================================================================
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    def __repr__(self):
        return f"<Order #{self.order_number} - table {self.table_number} - {self.status.value}>"


class OrderCounter(Base):
    """Named counter incremented atomically to hand out order numbers."""
    __tablename__ = "order_counters"

    name = Column(String(50), primary_key=True)
    value = Column(Integer, nullable=False)

    def __repr__(self):
        return f"<OrderCounter {self.name}={self.value}>"
