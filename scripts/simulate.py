"""
Chaos Simulation Script

Fires concurrent order acceptances at a running platform and checks that no
delivery agent ends up on two orders.

Run from project root with all four services up:
    python scripts/simulate.py --orders 30 --agents 10

Steps:
    1. register agents and an always-open restaurant
    2. place orders through the user gateway
    3. accept every order at once through the restaurant service
    4. verify: accepted orders == reserved agents, no agent reused
"""

import argparse
import asyncio
import random
import sys
import time
from collections import Counter
from datetime import datetime
from typing import Any

import httpx

# Windows event loop fix
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Configuration
USER_SERVICE_URL = "http://localhost:3000"
RESTAURANT_SERVICE_URL = "http://localhost:3002"
AGENT_SERVICE_URL = "http://localhost:3003"
ORDER_SERVICE_URL = "http://localhost:3004"

FIRST_NAMES = ["Asha", "Ravi", "Meera", "Karan", "Divya", "Arjun", "Nisha", "Vikram", "Priya", "Rahul"]
MENU_ITEMS = ["Masala Dosa", "Idli", "Vada", "Paneer Tikka", "Biryani", "Filter Coffee", "Gulab Jamun"]


def generate_agent() -> dict[str, str]:
    return {
        "name": f"{random.choice(FIRST_NAMES)} {random.randint(1, 999)}",
        "phoneNumber": f"555-{random.randint(100, 999)}-{random.randint(1000, 9999)}",
    }


def generate_order(restaurant_id: str, order_num: int) -> dict[str, Any]:
    return {
        "userId": f"sim-user-{order_num % 5}",
        "restaurantId": restaurant_id,
        "items": random.sample(MENU_ITEMS, random.randint(1, 3)),
    }


# =============================================================================
# SETUP
# =============================================================================

async def seed(client: httpx.AsyncClient, num_agents: int, num_orders: int) -> list[str]:
    """Register agents and a restaurant, then place orders. Returns order ids."""
    for _ in range(num_agents):
        response = await client.post(f"{AGENT_SERVICE_URL}/agents", json=generate_agent())
        response.raise_for_status()

    response = await client.post(
        f"{RESTAURANT_SERVICE_URL}/api/restaurants",
        json={"name": "Simulation Kitchen", "isOnline": True, "openingHour": 0, "closingHour": 23},
    )
    response.raise_for_status()
    restaurant_id = response.json()["id"]

    order_ids = []
    for i in range(num_orders):
        response = await client.post(
            f"{USER_SERVICE_URL}/api/users/orders",
            json=generate_order(restaurant_id, i),
        )
        response.raise_for_status()
        order_ids.append(response.json()["id"])
    return order_ids


# =============================================================================
# ACCEPTANCE
# =============================================================================

async def accept_order(client: httpx.AsyncClient, order_id: str) -> dict[str, Any]:
    start_time = time.time()
    try:
        response = await client.post(
            f"{RESTAURANT_SERVICE_URL}/api/restaurants/orders/{order_id}/accept",
            timeout=30.0,
        )
    except httpx.HTTPError as e:
        return {
            "order_id": order_id,
            "status": None,
            "error": str(e)[:100],
            "time": round(time.time() - start_time, 3),
        }

    body = response.json()
    return {
        "order_id": order_id,
        "status": response.status_code,
        "agent_id": body.get("assignedAgent", {}).get("id") if response.status_code == 200 else None,
        "error": body.get("error"),
        "time": round(time.time() - start_time, 3),
    }


async def verify(client: httpx.AsyncClient, results: list[dict[str, Any]]) -> list[str]:
    """Cross-check acceptances against what the services now store."""
    problems = []

    accepted = [r for r in results if r["status"] == 200]
    assigned = Counter(r["agent_id"] for r in accepted)
    reused = [agent_id for agent_id, count in assigned.items() if count > 1]
    if reused:
        problems.append(f"agents assigned to more than one order: {reused}")

    agents = (await client.get(f"{AGENT_SERVICE_URL}/agents/all")).json()
    busy = {a["id"] for a in agents if not a["isAvailable"]}
    if not set(assigned) <= busy:
        problems.append(f"assigned agents marked available: {sorted(set(assigned) - busy)}")

    for result in accepted:
        order = (await client.get(f"{ORDER_SERVICE_URL}/api/orders/{result['order_id']}")).json()
        if order["status"] != "ACCEPTED" or order["deliveryAgentId"] != result["agent_id"]:
            problems.append(f"order {result['order_id']} does not reference its agent")

    return problems


async def run_simulation(num_orders: int, num_agents: int) -> dict[str, Any]:
    print("=" * 70)
    print("🔥 CHAOS SIMULATION - CONCURRENT ORDER ACCEPTANCE")
    print("=" * 70)
    print(f"📋 Orders: {num_orders}")
    print(f"🛵 Agents: {num_agents}")
    print(f"⏰ Started: {datetime.now().strftime('%H:%M:%S')}")
    print("=" * 70)

    async with httpx.AsyncClient(timeout=30.0) as client:
        print("\n🌱 Seeding agents, restaurant and orders...")
        order_ids = await seed(client, num_agents, num_orders)

        print("\n🚀 Accepting all orders at once...\n")
        start_time = time.time()
        results = await asyncio.gather(*(accept_order(client, oid) for oid in order_ids))
        total_time = round(time.time() - start_time, 2)

        problems = await verify(client, results)

    by_status = Counter(r["status"] for r in results)

    print("\n" + "=" * 70)
    print("📊 SIMULATION RESULTS")
    print("=" * 70)
    print(f"\n✅ Accepted: {by_status.get(200, 0)}/{num_orders}")
    for status, count in sorted(by_status.items(), key=lambda item: str(item[0])):
        if status != 200:
            print(f"❌ Status {status}: {count}")
    print(f"⏱️  Total Time: {total_time}s")

    if results:
        times = [r["time"] for r in results]
        print("\n📈 Performance Metrics:")
        print(f"   Average Response: {round(sum(times) / len(times), 3)}s")
        print(f"   Fastest: {min(times)}s")
        print(f"   Slowest: {max(times)}s")

    print("\n" + "=" * 70)
    print("🔍 VERIFICATION")
    print("=" * 70)
    if problems:
        for problem in problems:
            print(f"   ❌ {problem}")
    else:
        print("   ✅ Every accepted order has its own agent")
    print("=" * 70)

    return {
        "total": num_orders,
        "accepted": by_status.get(200, 0),
        "total_time": total_time,
        "problems": problems,
        "results": results,
    }


async def check_health() -> bool:
    """Make sure every service answers before starting."""
    healthy = True
    async with httpx.AsyncClient(timeout=5.0) as client:
        for name, url in [
            ("user", USER_SERVICE_URL),
            ("restaurant", RESTAURANT_SERVICE_URL),
            ("agent", AGENT_SERVICE_URL),
            ("order", ORDER_SERVICE_URL),
        ]:
            try:
                response = await client.get(f"{url}/health")
                data = response.json()
                print(f"   ✅ {name}: {data.get('status')} (database: {data.get('database')})")
            except httpx.HTTPError as e:
                print(f"   ❌ {name}: {e}")
                healthy = False
    return healthy


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Concurrent order acceptance simulation")
    parser.add_argument("--orders", type=int, default=30, help="Number of orders")
    parser.add_argument("--agents", type=int, default=10, help="Number of agents to register")
    parser.add_argument("--skip-health", action="store_true", help="Skip the health pre-check")
    args = parser.parse_args()

    if not args.skip_health:
        print("\n🧪 Checking services...")
        if not asyncio.run(check_health()):
            print("\n❌ Pre-flight checks failed. Start all four services first.")
            sys.exit(1)

    summary = asyncio.run(run_simulation(num_orders=args.orders, num_agents=args.agents))
    sys.exit(1 if summary["problems"] else 0)
