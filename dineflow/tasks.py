"""
Celery Tasks
Keep the cashier's Excel ledger in step with the order store.
"""

import logging
import time
from datetime import datetime

from dineflow.celery_worker import celery_app
from dineflow.core.config import get_settings
from dineflow.services.ledger import LedgerManager

logger = logging.getLogger(__name__)


@celery_app.task(
    bind=True,
    max_retries=3,
    default_retry_delay=5,
    autoretry_for=(Exception,),
    retry_backoff=True
)
def export_order_to_ledger(self, order_data: dict) -> dict:
    """
    Upsert one order snapshot into the ledger.

    Queued by the API after every creation and every status change, so the
    row for an order number always ends up holding its latest status.

    Args:
        order_data: Order as produced by Order.to_dict()

    Returns:
        dict: LedgerManager result plus task id and timing
    """
    order_number = order_data.get("order_number", "unknown")
    status = order_data.get("status", "unknown")
    started = time.time()

    logger.info(f"📋 Task {self.request.id}: order #{order_number} ({status})")

    result = LedgerManager.from_settings(get_settings()).export_order(order_data)
    result["task_id"] = self.request.id
    result["processing_time_seconds"] = round(time.time() - started, 3)

    if not result["success"]:
        # Lock timeouts and unreadable files are worth another attempt
        logger.warning(f"⚠️ Order #{order_number} not written: {result['message']}; retrying")
        raise self.retry(exc=RuntimeError(result["message"]))

    logger.info(f"✅ Order #{order_number} in ledger after {result['processing_time_seconds']}s")
    return result


@celery_app.task
def health_check() -> dict:
    """Report that a worker is alive and whether it can see the ledger file."""
    ledger = LedgerManager.from_settings(get_settings())
    return {
        "status": "healthy",
        "worker": "celery",
        "ledger_file": str(ledger.ledger_file),
        "ledger_exists": ledger.ledger_file.exists(),
        "timestamp": datetime.now().isoformat(),
    }
