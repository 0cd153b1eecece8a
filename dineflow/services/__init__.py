"""
                        Services Module

Contains the order business logic, written against a pluggable store.

Services:
    - orders: Order store interface with memory and SQL backends
    - lifecycle: Order creation and the kitchen status state machine
    - broadcaster: Real-time fan-out of order events
    - stats: Dashboard metrics
    - ledger: Excel order ledger (written by Celery workers)
"""

from dineflow.services.broadcaster import EventBroadcaster, EventKind
from dineflow.services.lifecycle import OrderLifecycleEngine
from dineflow.services.stats import StatsAggregator

__all__ = ["EventBroadcaster", "EventKind", "OrderLifecycleEngine", "StatsAggregator"]
