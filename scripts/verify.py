"""
Ledger Verification Script

Verifies data integrity of the Excel order ledger written by the Celery
workers. Run from project root: python scripts/verify.py

Author: Khalil_Bannouri
Version: 1.0.0
"""

import os
import sys
from datetime import datetime

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pandas as pd

from dineflow.core.config import get_settings
from dineflow.services.ledger import LedgerManager


def verify_ledger() -> bool:
    """Verify ledger integrity after a simulation run."""
    ledger = LedgerManager.from_settings(get_settings())

    print("=" * 60)
    print("🔍 LEDGER VERIFICATION REPORT")
    print("=" * 60)
    print(f"⏰ Timestamp: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print(f"📄 File: {ledger.ledger_file}")
    print("=" * 60)

    if not ledger.ledger_file.exists():
        print("\n❌ Ledger file not found!")
        print("   Enable LEDGER_EXPORT_ENABLED, start a worker and run: python scripts/simulate.py")
        return False

    df = pd.DataFrame(ledger.get_all_orders())
    if df.empty:
        print("\n⚠️ Ledger is empty")
        return False
    print("\n✅ File loaded successfully!")

    print("\n📊 STATISTICS:")
    print(f"   Total Orders: {len(df)}")
    for status, count in df["status"].value_counts().items():
        print(f"   {status}: {count}")

    ok = True

    missing = [col for col in LedgerManager.COLUMNS if col not in df.columns]
    if missing:
        print(f"\n⚠️ Missing Columns: {missing}")
        ok = False
    else:
        print("\n✅ All required columns present")

    duplicates = df["order_number"].duplicated().sum()
    if duplicates > 0:
        print(f"⚠️ {duplicates} duplicate order numbers found!")
        ok = False
    else:
        print("✅ No duplicate order numbers")

    numbers = sorted(df["order_number"].astype(int))
    gaps = sorted(set(range(numbers[0], numbers[-1] + 1)) - set(numbers))
    if gaps:
        print(f"⚠️ Order numbers missing from ledger: {gaps[:10]}")
    else:
        print("✅ Order numbers contiguous")

    revenue = df.loc[df["status"] != "cancelled", "total"].sum()
    print("\n💰 REVENUE (excluding cancelled):")
    print(f"   Total: {revenue}")

    print("\n📋 LATEST ORDERS:")
    print("-" * 60)
    cols = ["order_number", "table_number", "customer_name", "total", "status"]
    print(df[cols].tail(5).to_string(index=False))

    print("\n" + "=" * 60)
    print("✅ VERIFICATION COMPLETE" if ok else "❌ VERIFICATION FOUND PROBLEMS")
    print("=" * 60)

    return ok


if __name__ == "__main__":
    sys.exit(0 if verify_ledger() else 1)
