"""
Stats Aggregator

Read-only projection over the order store for the admin dashboard.
Nothing is cached: every call recomputes from the store, which is cheap at
the volume of a single restaurant's day.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable, Optional

from dineflow.core.exceptions import StoreError
from dineflow.models import ACTIVE_STATUSES, OrderStatus
from dineflow.services.orders.base import BaseOrderStore, Order

logger = logging.getLogger(__name__)


@dataclass
class OrderStats:
    """Dashboard metrics."""
    total_orders: int = 0
    active_orders: int = 0
    completed_today: int = 0
    todays_revenue: int = 0

    def to_dict(self) -> dict:
        return {
            "total_orders": self.total_orders,
            "active_orders": self.active_orders,
            "completed_today": self.completed_today,
            "todays_revenue": self.todays_revenue,
        }


def local_today() -> date:
    return datetime.now().astimezone().date()


class StatsAggregator:
    """Derives today's metrics from the order store on demand."""

    def __init__(self, store: BaseOrderStore, today: Optional[Callable[[], date]] = None):
        self.store = store
        self._today = today or local_today

    @staticmethod
    def _local_day(order: Order) -> date:
        return order.created_at.astimezone().date()

    async def compute_stats(self) -> OrderStats:
        """
        Compute dashboard metrics.

        "Today" is the calendar day in the server's local time zone. If the
        store is unavailable, zeroed stats are returned.
        """
        try:
            orders = await self.store.list()
        except StoreError as e:
            logger.error(f"Stats degraded to zero: {e}")
            return OrderStats()

        today = self._today()
        todays_orders = [o for o in orders if self._local_day(o) == today]

        return OrderStats(
            total_orders=len(todays_orders),
            active_orders=sum(1 for o in orders if o.status in ACTIVE_STATUSES),
            completed_today=sum(1 for o in todays_orders if o.status == OrderStatus.COMPLETED),
            todays_revenue=sum(o.total for o in todays_orders if o.status != OrderStatus.CANCELLED),
        )
