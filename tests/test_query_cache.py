"""
Tests for the cache store.
"""

from atelier_sync.entities import QueryStatus
from atelier_sync.services import QueryCache
from tests.fakes import FakeClock


def test_set_and_get():
    cache = QueryCache()
    state = cache.set(("clients", 1, 10, ""), {"clients": ["a"]})

    assert cache.get(("clients", 1, 10, "")) == {"clients": ["a"]}
    assert state.status == QueryStatus.SUCCESS
    assert state.has_data


def test_get_unknown_key_returns_none():
    cache = QueryCache()
    assert cache.get(("missing",)) is None
    assert cache.get_state(("missing",)) is None
    assert ("missing",) not in cache


def test_invalidate_prefix_marks_matching_entries_stale():
    cache = QueryCache()
    cache.set(("ordersClient", "S1", "C1", "B1", ()), 1)
    cache.set(("ordersClient", "S1", "C2", "B2", ()), 2)
    cache.set(("clients", 1, 10, ""), 3)

    matched = cache.invalidate(("ordersClient", "S1", "C1"))

    assert [entry.key for entry in matched] == [("ordersClient", "S1", "C1", "B1", ())]
    assert cache.get_state(("ordersClient", "S1", "C1", "B1", ())).is_stale
    assert cache.get_state(("ordersClient", "S1", "C2", "B2", ())).status == QueryStatus.SUCCESS
    assert cache.get_state(("clients", 1, 10, "")).status == QueryStatus.SUCCESS


def test_invalidate_keeps_data_and_bumps_epoch():
    cache = QueryCache()
    cache.set(("seasons", 1, 10, ""), ["2025"])
    entry = cache.find(("seasons", 1, 10, ""))

    cache.invalidate(("seasons",))

    assert entry.epoch == 1
    assert entry.data == ["2025"]


def test_invalidate_exact():
    cache = QueryCache()
    cache.set(("week-records", "W1", "wp-1"), 1)
    cache.set(("week-records", "W1", "wp-1", "extra"), 2)

    matched = cache.invalidate(("week-records", "W1", "wp-1"), exact=True)

    assert len(matched) == 1
    assert not cache.get_state(("week-records", "W1", "wp-1", "extra")).is_stale


def test_subscribers_receive_snapshots():
    cache = QueryCache()
    received = []
    cache.subscribe(("users", 1, 10, ""), received.append)

    cache.set(("users", 1, 10, ""), ["u1"])
    cache.invalidate(("users",))

    assert [state.status for state in received] == [QueryStatus.SUCCESS, QueryStatus.STALE]
    assert received[0].subscriber_count == 1


def test_unsubscribe():
    cache = QueryCache()
    received = []
    cache.subscribe(("users",), received.append)

    assert cache.unsubscribe(("users",), received.append) is True
    assert cache.unsubscribe(("users",), received.append) is False

    cache.set(("users",), [])
    assert received == []


def test_set_error_keeps_previous_data():
    cache = QueryCache()
    cache.set(("summary", "S1"), {"total": 3})
    state = cache.set_error(("summary", "S1"), RuntimeError("down"))

    assert state.is_error
    assert state.data == {"total": 3}


def test_reset_drops_data():
    cache = QueryCache()
    cache.set(("workers-cursor", 20, ""), ["w"])

    entry = cache.reset(("workers-cursor", 20, ""))

    assert entry.data is None
    assert entry.status == QueryStatus.IDLE
    assert entry.last_updated_at is None


def test_collect_garbage_evicts_only_inactive_unsubscribed_entries():
    clock = FakeClock()
    cache = QueryCache(gc_time=300, clock=clock)
    listener = lambda state: None  # noqa: E731
    cache.subscribe(("kept",), listener)
    cache.set(("kept",), 1)
    cache.subscribe(("dropped",), listener)
    cache.set(("dropped",), 2)
    cache.unsubscribe(("dropped",), listener)

    clock.advance(299)
    assert cache.collect_garbage() == 0

    clock.advance(1)
    assert cache.collect_garbage() == 1
    assert ("kept",) in cache
    assert ("dropped",) not in cache


def test_evict_and_clear():
    cache = QueryCache()
    cache.set(("a",), 1)
    cache.set(("b",), 2)

    assert cache.evict(("a",)) is True
    assert cache.evict(("a",)) is False
    cache.clear()
    assert len(cache) == 0
