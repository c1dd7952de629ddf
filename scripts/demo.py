#!/usr/bin/env python3
"""
Demo script for atelier sync.

This script walks through the query cache, mutation-driven invalidation and
cursor lists against an in-memory workshop backend, so no API server is
needed.
"""

import asyncio

from atelier_sync import query_keys as qk
from atelier_sync.entities import CursorPage
from atelier_sync.errors import TransportError
from atelier_sync.services import (
    CursorPaginator,
    DefaultSelection,
    InvalidationDispatcher,
    ManualScheduler,
    MutationKind,
    MutationRunner,
    NotificationCenter,
    QueryClient,
)

WORKPLACES = [{"id": f"wp-{n}", "name": f"Atelier {n}"} for n in range(1, 41)]


class MemoryWorkplaces:
    """Cursor resource over WORKPLACES."""

    name = qk.WORKPLACES_CURSOR
    filter_key = ()

    def __init__(self) -> None:
        self.requests = 0

    async def fetch_page(self, *, take: int, cursor: str, search: str) -> CursorPage:
        self.requests += 1
        await asyncio.sleep(0.01)
        matching = [item for item in WORKPLACES if search.lower() in item["name"].lower()]
        start = [item["id"] for item in matching].index(cursor) + 1 if cursor else 0
        page = matching[start : start + take]
        more = start + take < len(matching)
        return CursorPage(items=tuple(page), next_cursor=page[-1]["id"] if more else None)


def print_section(title: str) -> None:
    """Print a section header."""
    print("\n" + "=" * 70)
    print(f"  {title}")
    print("=" * 70)


async def demo_deduplication() -> None:
    """Demonstrate concurrent reads sharing one request."""
    print_section("Request Deduplication")

    client = QueryClient.create(stale_time=30)
    calls = 0

    async def load_orders() -> dict:
        nonlocal calls
        calls += 1
        await asyncio.sleep(0.05)
        return {"orders": [{"id": "o1", "quantity": 4}]}

    key = qk.orders_client("S1", "C1", "B1", {"page": 1})
    results = await asyncio.gather(*(client.fetch_query(key, load_orders) for _ in range(5)))

    print(f"\n📥 5 concurrent reads of {key}")
    print(f"  Network calls: {calls}")
    print(f"  Same data everywhere: {all(result == results[0] for result in results)}")

    await client.fetch_query(key, load_orders)
    stats = client.get_stats()
    print(f"  Cache hits: {stats['cache_hits']}  Dedup rate: {stats['dedup_rate']:.0%}")


async def demo_mutations() -> None:
    """Demonstrate invalidation after successful and failed mutations."""
    print_section("Mutations and Invalidation")

    client = QueryClient.create()
    notifications = NotificationCenter()
    runner = MutationRunner(InvalidationDispatcher(client), notifications)
    fetches = {"C1": 0, "C2": 0}

    def orders_of(client_id: str):
        async def load() -> dict:
            fetches[client_id] += 1
            return {"client": client_id, "version": fetches[client_id]}

        return load

    for client_id in ("C1", "C2"):
        client.subscribe(qk.orders_client("S1", client_id, "B1"), lambda state: None, orders_of(client_id))
    await client.settle()

    async def create_order(variables: dict) -> dict:
        return {"status": "success", "message": "Order created", "order": {"bon_id": variables["bonId"]}}

    async def broken_call(variables: dict) -> dict:
        raise TransportError("Stock insuffisant", status_code=500)

    variables = {"clientId": "C1", "bonId": "B1", "quantity": 2}
    context = {"seasonId": "S1"}

    print("\n✍️  createOrderClient for C1 / B1")
    await runner.run(MutationKind.CREATE_ORDER_CLIENT, create_order, variables, context=context)
    print(f"  Fetches: {fetches}  (only C1 refetched)")

    print("\n✍️  createOrderClient failing with HTTP 500")
    outcome = await runner.run(MutationKind.CREATE_ORDER_CLIENT, broken_call, variables, context=context)
    print(f"  Outcome: {outcome.status} - {outcome.message}")
    print(f"  Fetches: {fetches}  (cache untouched)")

    print("\n🔔 Notifications:")
    for notification in notifications.recent():
        marker = "✗" if notification.is_error else "✓"
        print(f"  {marker} {notification.title}: {notification.message}")


async def demo_cursor_list() -> None:
    """Demonstrate infinite scroll, search and default selection."""
    print_section("Cursor Lists")

    client = QueryClient.create()
    scheduler = ManualScheduler()
    resource = MemoryWorkplaces()
    paginator = CursorPaginator(client, resource, page_size=15, scheduler=scheduler, debounce=0.3)
    selection = DefaultSelection(paginator)

    paginator.mount()
    await client.settle()
    print(f"\n📄 Page 1: {len(paginator.items)} items, next cursor {paginator.snapshot().next_cursor}")
    print(f"  Default selection: {selection.value}")

    await paginator.on_sentinel_visible()
    print(f"📄 After sentinel: {len(paginator.items)} items")

    print("\n🔍 Typing 'A', 'At', 'Atelier 2' within the debounce window")
    for term in ("A", "At", "Atelier 2"):
        paginator.set_search(term)
        scheduler.advance(0.1)
    scheduler.advance(0.3)
    await client.settle()
    print(f"  Applied search: {paginator.search!r}")
    print(f"  Items: {[item['name'] for item in paginator.items]}")
    print(f"  Requests so far: {resource.requests}")

    await client.invalidate(qk.root(qk.WORKPLACES_CURSOR))
    print(f"\n♻️  After invalidation: {len(paginator.items)} items, search still {paginator.search!r}")


async def run() -> None:
    await demo_deduplication()
    await demo_mutations()
    await demo_cursor_list()


def main() -> None:
    print("\n🚀 Atelier Sync Demo")
    print("=" * 70)
    print("Query cache, invalidation and cursor lists on an in-memory backend")

    try:
        asyncio.run(run())

        print("\n" + "=" * 70)
        print("✅ Demo completed successfully!")
        print("=" * 70)

    except Exception as e:
        print(f"\n❌ Error: {e}")


if __name__ == "__main__":
    main()
