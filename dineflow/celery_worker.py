"""
Celery Worker Configuration

Ledger worker for the cashier's Excel copy of every order. Redis is both the
broker and the result backend.

Start with:
    celery -A dineflow.celery_worker worker --loglevel=info
"""

from celery import Celery

from dineflow.core.config import get_settings

settings = get_settings()

LEDGER_QUEUE = "ledger"

celery_app = Celery(
    "dineflow_ledger",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["dineflow.tasks"],
)

celery_app.conf.update(
    # Serialization (order snapshots are plain dicts from Order.to_dict)
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,

    # Routing
    task_default_queue=LEDGER_QUEUE,
    task_routes={"dineflow.tasks.export_order_to_ledger": {"queue": LEDGER_QUEUE}},

    # All writers share one spreadsheet behind a file lock
    worker_prefetch_multiplier=1,
    worker_concurrency=2,
    task_time_limit=settings.ledger_lock_timeout * 4,

    # Results are only kept for the verify script and debugging
    result_expires=3600,

    # A status change must not be lost if a worker dies mid-write
    task_acks_late=True,
    task_reject_on_worker_lost=True,

    broker_connection_retry_on_startup=True,
)


if __name__ == "__main__":
    celery_app.start()
