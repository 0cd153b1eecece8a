"""
Dinner Rush Simulation Script

Fires a burst of concurrent orders at the API, then walks every order
through the kitchen. Checks that order numbers came out contiguous and that
the dashboard revenue matches what was served.

Run from project root (with the API running): python scripts/simulate.py

Author: Khalil_Bannouri
Version: 1.0.0
"""

import argparse
import asyncio
import random
import sys
import time
from datetime import datetime
from typing import Any, Optional

import httpx

# Configuration
API_BASE_URL = "http://localhost:3000"
TOTAL_ORDERS = 50
TABLES = 20

MENU_ITEMS = [
    {"item_id": "1", "name": "Paneer Tikka", "price": 220},
    {"item_id": "2", "name": "Chicken 65", "price": 250},
    {"item_id": "5", "name": "Butter Chicken", "price": 320},
    {"item_id": "7", "name": "Chicken Biryani", "price": 300},
    {"item_id": "8", "name": "Dal Makhani", "price": 220},
    {"item_id": "11", "name": "Butter Naan", "price": 50},
    {"item_id": "14", "name": "Masala Chai", "price": 40},
    {"item_id": "17", "name": "Mango Lassi", "price": 100},
    {"item_id": "18", "name": "Gulab Jamun", "price": 100},
]

# Routes an order can take through the kitchen
KITCHEN_PATHS = [
    ["preparing", "ready", "completed"],
    ["preparing", "ready", "completed"],
    ["preparing", "ready", "completed"],
    ["preparing", "ready"],
    ["preparing"],
    ["cancelled"],
    ["preparing", "cancelled"],
]


def generate_random_items() -> list[dict]:
    """Generate a random cart."""
    items = []
    for menu_item in random.sample(MENU_ITEMS, random.randint(1, 4)):
        item = menu_item.copy()
        item["quantity"] = random.randint(1, 3)
        items.append(item)
    return items


def generate_order_payload() -> dict[str, Any]:
    """Generate payload for /api/orders endpoint."""
    return {
        "table_number": random.randint(0, TABLES),
        "customer_name": random.choice(["Guest", "Asha", "Ravi", "Meera", "Kabir"]),
        "items": generate_random_items(),
        "notes": random.choice(["", "Less spicy", "No onions", "Extra chutney"]),
    }


async def send_order(client: httpx.AsyncClient, order_num: int) -> dict[str, Any]:
    """Place one order."""
    start_time = time.time()

    try:
        response = await client.post(
            f"{API_BASE_URL}/api/orders",
            json=generate_order_payload(),
            timeout=30.0
        )
        elapsed = round(time.time() - start_time, 3)

        if response.status_code == 201:
            data = response.json()
            return {
                "order_num": order_num,
                "success": True,
                "id": data["id"],
                "order_number": data["order_number"],
                "total": data["total"],
                "time": elapsed,
            }
        return {
            "order_num": order_num,
            "success": False,
            "error": response.text[:100],
            "time": elapsed,
        }
    except Exception as e:
        elapsed = round(time.time() - start_time, 3)
        return {
            "order_num": order_num,
            "success": False,
            "error": str(e)[:100],
            "time": elapsed,
        }


async def run_kitchen(client: httpx.AsyncClient, order: dict[str, Any]) -> Optional[str]:
    """Move an order along a random kitchen path; return its final status."""
    final_status = "new"
    for status in random.choice(KITCHEN_PATHS):
        await asyncio.sleep(random.uniform(0.0, 0.2))
        response = await client.patch(
            f"{API_BASE_URL}/api/orders/{order['id']}/status",
            json={"status": status},
            timeout=30.0
        )
        if response.status_code != 200:
            print(f"   ❌ Order #{order['order_number']} → {status}: {response.text[:100]}")
            return None
        final_status = status
    return final_status


async def run_simulation(num_orders: int = TOTAL_ORDERS) -> dict[str, Any]:
    """
    Run the dinner rush.

    Args:
        num_orders: Number of orders to place concurrently
    """
    print("=" * 70)
    print("🔥 DINNER RUSH SIMULATION")
    print("=" * 70)
    print(f"📋 Total Orders: {num_orders}")
    print(f"🎯 Target: {API_BASE_URL}")
    print(f"⏰ Started: {datetime.now().strftime('%H:%M:%S')}")
    print("=" * 70)

    start_time = time.time()

    async with httpx.AsyncClient() as client:
        before = (await client.get(f"{API_BASE_URL}/api/stats")).json()

        print("\n🚀 Placing orders...\n")
        results = await asyncio.gather(*[send_order(client, i + 1) for i in range(num_orders)])
        successful = [r for r in results if r["success"]]
        failed = [r for r in results if not r["success"]]

        print("👨‍🍳 Kitchen at work...\n")
        finals = await asyncio.gather(*[run_kitchen(client, order) for order in successful])

        after = (await client.get(f"{API_BASE_URL}/api/stats")).json()

    total_time = round(time.time() - start_time, 2)

    print("\n" + "=" * 70)
    print("📊 SIMULATION RESULTS")
    print("=" * 70)
    print(f"\n✅ Successful Orders: {len(successful)}/{num_orders}")
    print(f"❌ Failed Orders: {len(failed)}/{num_orders}")
    print(f"⏱️  Total Time: {total_time}s")

    numbers = sorted(r["order_number"] for r in successful)
    contiguous = bool(numbers) and numbers == list(range(numbers[0], numbers[0] + len(numbers)))
    print(f"\n🔢 Order numbers #{numbers[0] if numbers else '-'}–#{numbers[-1] if numbers else '-'}: "
          f"{'contiguous, no duplicates' if contiguous else 'GAPS OR DUPLICATES!'}")

    served = sum(
        order["total"] for order, final in zip(successful, finals)
        if final not in (None, "cancelled")
    )
    revenue_delta = after["todays_revenue"] - before["todays_revenue"]
    print(f"💰 Revenue from this run: {served} (dashboard moved by {revenue_delta})")

    if successful:
        avg_time = round(sum(r["time"] for r in successful) / len(successful), 3)
        print(f"\n📈 Average create response: {avg_time}s")

    if failed:
        print("\n⚠️  Failed Order Details (showing first 5):")
        for f in failed[:5]:
            print(f"   Order {f['order_num']}: {f.get('error', 'Unknown error')}")

    print("\n" + "=" * 70)

    return {
        "total": num_orders,
        "successful": len(successful),
        "failed": len(failed),
        "contiguous": contiguous,
        "revenue_matches": served == revenue_delta,
        "total_time": total_time,
    }


async def preflight() -> bool:
    """Check the API is up before the rush."""
    async with httpx.AsyncClient() as client:
        try:
            response = await client.get(f"{API_BASE_URL}/health")
        except httpx.HTTPError as e:
            print(f"❌ API unreachable: {e}")
            return False

    if response.status_code != 200:
        print(f"❌ Health check failed: {response.text}")
        return False

    data = response.json()
    print(f"✅ Status: {data.get('status')} (store: {data.get('order_store')}, "
          f"listeners: {data.get('listeners')})")
    return True


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Dinner Rush Simulation")
    parser.add_argument("--orders", type=int, default=TOTAL_ORDERS, help="Number of orders")
    parser.add_argument("--url", default=API_BASE_URL, help="API base URL")
    args = parser.parse_args()

    API_BASE_URL = args.url.rstrip("/")

    if not asyncio.run(preflight()):
        sys.exit(1)

    summary = asyncio.run(run_simulation(args.orders))
    sys.exit(0 if summary["contiguous"] and summary["revenue_matches"] else 1)
