"""
Tests for the query client: fetching, deduplication and invalidation.
"""

import asyncio

import pytest

from atelier_sync.entities import QueryStatus
from atelier_sync.errors import TransportError
from atelier_sync.services import QueryClient
from tests.fakes import ControlledFetcher, CountingFetcher, spin

ORDERS_C1 = ("ordersClient", "S1", "C1", "B1", (("page", 1),))


@pytest.mark.asyncio
async def test_subscribe_fetches_once_and_notifies(query_client):
    fetcher = CountingFetcher({"orders": []})
    states = []

    query_client.subscribe(ORDERS_C1, states.append, fetcher)
    await query_client.settle()

    assert fetcher.calls == 1
    assert query_client.get_query_data(ORDERS_C1) == {"orders": []}
    assert states[0].is_loading
    assert states[-1].status == QueryStatus.SUCCESS
    assert not states[-1].is_fetching


@pytest.mark.asyncio
async def test_concurrent_subscriptions_share_one_network_call(query_client):
    """Subscribers arriving while a fetch is in flight join it."""
    fetcher = CountingFetcher({"ok": True})
    fetcher.gate = asyncio.Event()

    query_client.subscribe(ORDERS_C1, lambda state: None, fetcher)
    await spin()
    query_client.subscribe(ORDERS_C1, lambda state: None, fetcher)
    direct = asyncio.ensure_future(query_client.fetch_query(ORDERS_C1, fetcher))
    await spin()
    fetcher.gate.set()

    assert await direct == {"ok": True}
    await query_client.settle()
    assert fetcher.calls == 1
    assert query_client.metrics.deduplicated_calls >= 1


@pytest.mark.asyncio
async def test_fresh_data_is_served_from_cache_within_stale_time(clock):
    client = QueryClient.create(stale_time=30, gc_time=300, clock=clock)
    fetcher = CountingFetcher(["2025"])

    await client.fetch_query(("seasons", 1, 10, ""), fetcher)
    await client.fetch_query(("seasons", 1, 10, ""), fetcher)
    assert fetcher.calls == 1
    assert client.metrics.cache_hits == 1

    clock.advance(30)
    await client.fetch_query(("seasons", 1, 10, ""), fetcher)
    assert fetcher.calls == 2


@pytest.mark.asyncio
async def test_stale_time_zero_refetches_every_time(query_client):
    fetcher = CountingFetcher([])

    await query_client.fetch_query(("users", 1, 10, ""), fetcher)
    await query_client.fetch_query(("users", 1, 10, ""), fetcher)

    assert fetcher.calls == 2


@pytest.mark.asyncio
async def test_invalidate_refetches_subscribed_entries_exactly_once(query_client):
    watched = CountingFetcher(lambda n: {"version": n})
    query_client.subscribe(ORDERS_C1, lambda state: None, watched)
    await query_client.settle()

    matched = await query_client.invalidate(("ordersClient", "S1"))

    assert matched == 1
    assert watched.calls == 2
    assert query_client.get_query_data(ORDERS_C1) == {"version": 2}
    assert query_client.get_query_state(ORDERS_C1).status == QueryStatus.SUCCESS


@pytest.mark.asyncio
async def test_invalidate_leaves_unsubscribed_entries_stale_until_next_subscribe(query_client):
    fetcher = CountingFetcher({"total": 1})
    key = ("clientSummary", "S1", "C1", "B1")
    await query_client.fetch_query(key, fetcher)

    await query_client.invalidate(("clientSummary",))

    assert fetcher.calls == 1
    assert query_client.get_query_state(key).is_stale

    query_client.subscribe(key, lambda state: None)
    await query_client.settle()
    assert fetcher.calls == 2
    assert query_client.get_query_state(key).status == QueryStatus.SUCCESS


@pytest.mark.asyncio
async def test_response_from_before_invalidation_never_overwrites_newer_data(query_client):
    fetcher = ControlledFetcher()
    query_client.subscribe(ORDERS_C1, lambda state: None, fetcher)
    await spin()

    invalidation = asyncio.ensure_future(query_client.invalidate(("ordersClient",)))
    await spin()
    assert len(fetcher.pending) == 2

    fetcher.pending[1].set_result("new")
    await invalidation
    fetcher.pending[0].set_result("old")
    await query_client.settle()

    assert query_client.get_query_data(ORDERS_C1) == "new"
    assert query_client.metrics.dropped_responses == 1


@pytest.mark.asyncio
async def test_errors_are_isolated_per_key(query_client):
    failing = CountingFetcher(error=TransportError("Server unavailable", status_code=503))
    working = CountingFetcher(["p1"])

    query_client.subscribe(("products", "S1", 1, 10, ""), lambda state: None, failing)
    query_client.subscribe(("seasons", 1, 10, ""), lambda state: None, working)
    await query_client.settle()

    failed_state = query_client.get_query_state(("products", "S1", 1, 10, ""))
    assert failed_state.is_error
    assert str(failed_state.error) == "Server unavailable"
    assert query_client.get_query_state(("seasons", 1, 10, "")).is_success

    with pytest.raises(TransportError):
        await query_client.fetch_query(("products", "S1", 1, 10, ""))


@pytest.mark.asyncio
async def test_failed_fetch_is_not_retried_by_default(query_client):
    failing = CountingFetcher(error=TransportError())

    with pytest.raises(TransportError):
        await query_client.fetch_query(("summary", "S1"), failing)

    assert failing.calls == 1


@pytest.mark.asyncio
async def test_retry_setting_adds_attempts(clock):
    client = QueryClient.create(stale_time=0, retry=2, clock=clock)
    failing = CountingFetcher(error=TransportError())

    with pytest.raises(TransportError):
        await client.fetch_query(("summary", "S1"), failing)

    assert failing.calls == 3


@pytest.mark.asyncio
async def test_fetch_without_fetcher_raises(query_client):
    with pytest.raises(ValueError):
        await query_client.fetch_query(("unknown",))


@pytest.mark.asyncio
async def test_unsubscribed_entries_are_garbage_collected_after_gc_time(query_client, clock):
    subscription = query_client.subscribe(("workers", (), 1, 10, ""), lambda state: None, CountingFetcher([]))
    await query_client.settle()
    subscription.close()

    clock.advance(300)
    assert query_client.collect_garbage() == 1
    assert query_client.get_query_state(("workers", (), 1, 10, "")) is None


@pytest.mark.asyncio
async def test_set_query_data_notifies_subscribers(query_client):
    states = []
    query_client.subscribe(("generalSettings",), states.append)

    query_client.set_query_data(("generalSettings",), {"currency": "DZD"})

    assert states[-1].data == {"currency": "DZD"}


@pytest.mark.asyncio
async def test_clear_drops_unsubscribed_entries(query_client):
    await query_client.fetch_query(("a",), CountingFetcher(1))
    await query_client.fetch_query(("b",), CountingFetcher(2))

    query_client.clear()

    assert query_client.find_states() == []


@pytest.mark.asyncio
async def test_get_stats(query_client):
    await query_client.fetch_query(("a",), CountingFetcher(1))

    stats = query_client.get_stats()

    assert stats["entries"] == 1
    assert stats["network_calls"] == 1
    assert stats["gc_time"] == 300


@pytest.mark.asyncio
async def test_create_binds_executor_to_the_client_cache(clock):
    client = QueryClient.create(stale_time=0, gc_time=300, clock=clock)
    fetcher = CountingFetcher({"workers": []})

    client.subscribe(("workers", (), 1, 10, ""), lambda state: None, fetcher)
    await client.settle()

    assert client.cache is client.executor._cache
    assert client.metrics is client.executor.metrics
    assert fetcher.calls == 1
    assert client.get_query_data(("workers", (), 1, 10, "")) == {"workers": []}


@pytest.mark.asyncio
async def test_clear_keeps_subscribed_entries_and_refetches(query_client):
    fetcher = CountingFetcher(lambda calls: {"version": calls})
    states = []
    query_client.subscribe(ORDERS_C1, states.append, fetcher)
    await query_client.fetch_query(("seasons", 1, 10, ""), CountingFetcher([]))
    await query_client.settle()

    query_client.clear()
    assert query_client.get_query_data(ORDERS_C1) is None
    await query_client.settle()

    assert [state.key for state in query_client.find_states()] == [ORDERS_C1]
    assert fetcher.calls == 2
    assert query_client.get_query_data(ORDERS_C1) == {"version": 2}
    assert states[-1].status == QueryStatus.SUCCESS


@pytest.mark.asyncio
async def test_clear_without_refetch_still_reaches_subscribers_on_invalidate(query_client):
    fetcher = CountingFetcher(lambda calls: {"version": calls})
    query_client.subscribe(ORDERS_C1, lambda state: None, fetcher)
    await query_client.settle()

    query_client.clear(refetch=False)
    await query_client.settle()
    assert fetcher.calls == 1
    assert query_client.get_query_state(ORDERS_C1).status == QueryStatus.IDLE

    assert await query_client.invalidate(("ordersClient",)) == 1
    assert fetcher.calls == 2
    assert query_client.get_query_data(ORDERS_C1) == {"version": 2}


@pytest.mark.asyncio
async def test_periodic_garbage_collection(query_client, clock):
    subscription = query_client.subscribe(("workers", (), 1, 10, ""), lambda state: None, CountingFetcher([]))
    await query_client.settle()
    subscription.close()
    clock.advance(300)

    collector = asyncio.create_task(query_client.collect_garbage_periodically(0))
    await spin()
    collector.cancel()
    with pytest.raises(asyncio.CancelledError):
        await collector

    assert query_client.get_query_state(("workers", (), 1, 10, "")) is None
