"""
Order Store Abstract Base Class

Defines the domain records shared by every storage backend and the interface
contract each order store implements. The lifecycle engine, broadcaster and
stats aggregator depend only on this module, never on a concrete backend.

Design Pattern: Strategy Pattern
    - InMemoryOrderStore for development and tests
    - SqlOrderStore for durable storage
    - Backends are swapped through configuration, not code changes

Author: Khalil Bannouri
Version: 1.0.0
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from dineflow.models import OrderStatus


@dataclass(frozen=True)
class LineItem:
    """
    One menu item inside an order.

    Name and price are copied from the menu when the order is placed, so
    later menu edits never change historical orders.

    Attributes:
        item_id: Menu collaborator's identifier for the item
        name: Item name at order time
        price: Unit price in the smallest currency unit
        quantity: Positive number of units
    """
    item_id: str
    name: str
    price: int
    quantity: int

    @property
    def line_total(self) -> int:
        return self.price * self.quantity

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "item_id": self.item_id,
            "name": self.name,
            "price": self.price,
            "quantity": self.quantity,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "LineItem":
        return cls(
            item_id=str(data.get("item_id", "")),
            name=data["name"],
            price=int(data["price"]),
            quantity=int(data["quantity"]),
        )


@dataclass(frozen=True)
class Order:
    """
    An order as held by the store.

    Instances are immutable; status changes produce a new instance through
    ``with_status`` and are written back with ``BaseOrderStore.update``.
    """
    id: str
    order_number: int
    table_number: int
    items: tuple[LineItem, ...]
    total: int
    status: OrderStatus
    created_at: datetime
    updated_at: datetime
    customer_name: str = "Guest"
    notes: str = ""

    def with_status(self, status: OrderStatus, when: datetime) -> "Order":
        """Return a copy moved to ``status`` with ``updated_at`` refreshed."""
        return Order(
            id=self.id,
            order_number=self.order_number,
            table_number=self.table_number,
            items=self.items,
            total=self.total,
            status=status,
            created_at=self.created_at,
            updated_at=when,
            customer_name=self.customer_name,
            notes=self.notes,
        )

    def to_dict(self) -> dict:
        """Convert to a JSON-ready dictionary (timestamps in ISO 8601)."""
        return {
            "id": self.id,
            "order_number": self.order_number,
            "table_number": self.table_number,
            "customer_name": self.customer_name,
            "notes": self.notes,
            "items": [item.to_dict() for item in self.items],
            "total": self.total,
            "status": self.status.value,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


# Mutators receive the current order and return its replacement. They may
# raise to abort the update; the store then leaves the order untouched.
OrderMutator = Callable[[Order], Order]


class BaseOrderStore(ABC):
    """
    Abstract base class for order stores.

    The store is the single source of truth for orders and owns the
    order-number counter. Implementations must guarantee:
        1. ``allocate_order_number`` never hands out the same number twice
        2. ``list`` returns newest orders first
        3. ``update`` runs the mutator and the write as one atomic unit
    """

    @property
    @abstractmethod
    def backend_name(self) -> str:
        """Return the backend name (e.g., "memory", "database")."""
        pass

    async def start(self) -> None:
        """Prepare backend resources (tables, counters). Optional."""

    async def close(self) -> None:
        """Release backend resources. Optional."""

    @abstractmethod
    async def allocate_order_number(self) -> int:
        """
        Return the next order number.

        Atomic with respect to concurrent callers; the first call on a fresh
        store returns the configured seed.
        """
        pass

    @abstractmethod
    async def insert(self, order: Order) -> Order:
        """
        Persist a newly created order.

        Raises:
            StoreError: If an order with the same id already exists
        """
        pass

    @abstractmethod
    async def get(self, order_id: str) -> Order:
        """
        Fetch one order.

        Raises:
            OrderNotFound: If the id is unknown
        """
        pass

    @abstractmethod
    async def list(self, status: Optional[OrderStatus] = None) -> list[Order]:
        """Return orders newest-first, optionally restricted to one status."""
        pass

    @abstractmethod
    async def update(self, order_id: str, mutator: OrderMutator) -> Order:
        """
        Atomically replace an order with ``mutator(current)``.

        Raises:
            OrderNotFound: If the id is unknown
            Any exception raised by the mutator, with nothing written
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Check that the backend is reachable."""
        pass

