"""
Excel Order Ledger with Concurrency Control

Keeps a spreadsheet copy of every order for the cashier. One row per order,
keyed by order number; a status change rewrites that row in place.

Several Celery workers may write at once, so every read-modify-write cycle
runs under a file lock.

Author: Khalil Bannouri
Version: 1.0.0
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any

import pandas as pd
from filelock import FileLock, Timeout

from dineflow.core.config import Settings

logger = logging.getLogger(__name__)


class LedgerManager:
    """Process- and thread-safe Excel ledger."""

    COLUMNS = [
        "order_number",
        "order_id",
        "date_time",
        "table_number",
        "customer_name",
        "items",
        "notes",
        "total",
        "status",
        "updated_at",
        "exported_at",
    ]

    def __init__(self, data_dir: Path, filename: str = "orders.xlsx", lock_timeout: int = 30):
        self.data_dir = Path(data_dir)
        self.ledger_file = self.data_dir / filename
        self.lock_file = self.data_dir / f"{filename}.lock"
        self.lock_timeout = lock_timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "LedgerManager":
        return cls(
            data_dir=Path(settings.data_directory),
            filename=settings.ledger_filename,
            lock_timeout=settings.ledger_lock_timeout,
        )

    def _ensure_data_dir(self) -> None:
        """Create data directory if needed."""
        if not self.data_dir.exists():
            self.data_dir.mkdir(parents=True, exist_ok=True)
            logger.info(f"Created data directory: {self.data_dir}")

    def _load_or_create_df(self) -> pd.DataFrame:
        """
        Load the existing ledger or start an empty one.

        A ledger that exists but cannot be read raises; writing a fresh frame
        over it would drop every other order.
        """
        if self.ledger_file.exists():
            try:
                return pd.read_excel(self.ledger_file, engine="openpyxl")
            except Exception as e:
                logger.error(f"Error reading {self.ledger_file}: {e}")
                raise
        return pd.DataFrame(columns=self.COLUMNS)

    @staticmethod
    def _is_stale(existing: pd.DataFrame, order_data: dict[str, Any]) -> bool:
        """True if the ledger already holds a newer snapshot of this order."""
        incoming = pd.to_datetime(order_data.get("updated_at"), utc=True, errors="coerce")
        if existing.empty or pd.isna(incoming):
            return False
        stored = pd.to_datetime(existing["updated_at"], utc=True, errors="coerce").max()
        return not pd.isna(stored) and incoming < stored

    def _row(self, order_data: dict[str, Any], export_time: str) -> dict[str, Any]:
        items = order_data.get("items") or []
        return {
            "order_number": order_data.get("order_number"),
            "order_id": order_data.get("id"),
            "date_time": order_data.get("created_at", export_time),
            "table_number": order_data.get("table_number", 0),
            "customer_name": order_data.get("customer_name", "Guest"),
            "items": json.dumps(items),
            "notes": order_data.get("notes", ""),
            "total": order_data.get("total"),
            "status": order_data.get("status"),
            "updated_at": order_data.get("updated_at"),
            "exported_at": export_time,
        }

    def export_order(self, order_data: dict[str, Any]) -> dict[str, Any]:
        """Insert or refresh an order's row with file locking."""
        self._ensure_data_dir()

        order_number = order_data.get("order_number", 0)
        result = {
            "success": False,
            "message": "",
            "order_number": order_number,
            "exported_at": None,
            "skipped": False,
        }

        try:
            lock = FileLock(str(self.lock_file), timeout=self.lock_timeout)

            with lock:
                logger.debug(f"Lock acquired for Order #{order_number}")

                df = self._load_or_create_df()
                if not df.empty and self._is_stale(df[df["order_number"] == order_number], order_data):
                    # A retried export can arrive after a later status change
                    logger.info(
                        f"Order #{order_number} ledger row is newer than this "
                        f"{order_data.get('status')} snapshot; skipped"
                    )
                    result["success"] = True
                    result["skipped"] = True
                    result["message"] = f"Order #{order_number} already up to date"
                    return result

                export_time = datetime.now().isoformat()
                new_row = pd.DataFrame([self._row(order_data, export_time)])

                if not df.empty:
                    df = df[df["order_number"] != order_number]
                df = pd.concat([df, new_row], ignore_index=True)
                df = df.sort_values("order_number", kind="stable")
                df.to_excel(str(self.ledger_file), index=False, engine="openpyxl")

                logger.info(f"Order #{order_number} written to ledger ({order_data.get('status')})")

                result["success"] = True
                result["message"] = f"Order #{order_number} exported"
                result["exported_at"] = export_time

            logger.debug(f"Lock released for Order #{order_number}")

        except Timeout:
            result["message"] = f"Lock timeout ({self.lock_timeout}s)"
            logger.error(f"Lock timeout for Order #{order_number}")

        except Exception as e:
            result["message"] = str(e)
            logger.exception(f"Error exporting Order #{order_number}")

        return result

    def get_all_orders(self) -> list[dict[str, Any]]:
        """Get all ledger rows."""
        if not self.ledger_file.exists():
            return []

        try:
            df = pd.read_excel(self.ledger_file, engine="openpyxl")
            return df.to_dict("records")
        except Exception as e:
            logger.error(f"Error reading ledger: {e}")
            return []

    def clear_all(self) -> bool:
        """Delete the ledger and its lock file."""
        try:
            for f in [self.ledger_file, self.lock_file]:
                if f.exists():
                    f.unlink()
            logger.info("Ledger cleared")
            return True
        except Exception as e:
            logger.error(f"Error clearing ledger: {e}")
            return False
