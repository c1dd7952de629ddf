"""
Tests for the invalidation rule table and dispatcher.
"""

import logging

import pytest

from atelier_sync import query_keys as qk
from atelier_sync.errors import UnknownMutationError
from atelier_sync.services import (
    INVALIDATION_RULES,
    InvalidationDispatcher,
    MutationKind,
    PrefixTemplate,
    exact,
    prefix,
    ref,
)
from tests.fakes import CountingFetcher


def test_every_mutation_kind_has_a_rule():
    assert set(INVALIDATION_RULES) == set(MutationKind)
    assert all(INVALIDATION_RULES[kind] for kind in MutationKind)


def test_template_resolves_references_with_fallbacks():
    template = prefix("ordersClient", ref("context.seasonId"), ref("input.clientId"), ref("input.bonId", "result.order.bon_id"))
    scope = {"input": {"clientId": "C1"}, "result": {"order": {"bon_id": "B9"}}, "context": {"seasonId": "S1"}}

    assert template.resolve(scope) == ("ordersClient", "S1", "C1", "B9")


def test_template_with_missing_reference_resolves_to_none():
    template = PrefixTemplate(parts=("weeks-cursor", ref("input.workplaceId")))
    assert template.resolve({"input": {}, "result": {}, "context": {}}) is None


def test_resolve_create_order_client(query_client):
    dispatcher = InvalidationDispatcher(query_client)

    resolved = dispatcher.resolve(
        MutationKind.CREATE_ORDER_CLIENT,
        variables={"clientId": "C1", "bonId": "B1"},
        result={"status": "success"},
        context={"seasonId": "S1"},
    )

    assert resolved == [
        (("ordersClient", "S1", "C1", "B1"), False),
        (("clientSummary", "S1", "C1"), False),
        (("products", "S1"), False),
    ]


def test_resolve_uses_result_when_input_lacks_the_value(query_client):
    dispatcher = InvalidationDispatcher(query_client)

    resolved = dispatcher.resolve(
        MutationKind.DELETE_RETURN_STOCK,
        variables={"clientReturnId": "R1"},
        result={"status": "success", "data": {"clientId": "C3", "bonId": "B3"}},
        context={"seasonId": "S1"},
    )

    assert (("ordersClient", "S1", "C3", "B3"), False) in resolved
    assert (("stock-return", "S1"), False) in resolved


def test_week_record_payment_invalidates_exact_records_key(query_client):
    dispatcher = InvalidationDispatcher(query_client)

    resolved = dispatcher.resolve(
        MutationKind.UPDATE_WEEK_RECORD_PAYMENT,
        variables={"weekId": "W1", "workplaceId": "wp-1", "recordId": "R1", "type": "paid"},
    )

    assert resolved[0] == (qk.week_records("W1", "wp-1"), True)
    assert (("worker-records",), False) in resolved


def test_unresolvable_template_is_skipped_with_warning(query_client, caplog):
    dispatcher = InvalidationDispatcher(query_client)

    with caplog.at_level(logging.WARNING):
        resolved = dispatcher.resolve(MutationKind.CREATE_WEEK, variables={})

    assert resolved == []
    assert "unresolved reference" in caplog.text


def test_unknown_kind_raises(query_client):
    dispatcher = InvalidationDispatcher(query_client)

    with pytest.raises(UnknownMutationError):
        dispatcher.resolve("launchRocket")


@pytest.mark.asyncio
async def test_order_for_c1_b1_refetches_only_c1_regions(query_client):
    """Orders and summary of C1/B1 refetch; C2/B2 stays untouched."""
    orders_c1 = CountingFetcher({"orders": []})
    summary_c1 = CountingFetcher({"total": 0})
    orders_c2 = CountingFetcher({"orders": []})
    query_client.subscribe(qk.orders_client("S1", "C1", "B1", {"page": 1, "limit": 10}), lambda s: None, orders_c1)
    query_client.subscribe(qk.client_summary("S1", "C1", "B1"), lambda s: None, summary_c1)
    query_client.subscribe(qk.orders_client("S1", "C2", "B2", {"page": 1, "limit": 10}), lambda s: None, orders_c2)
    await query_client.settle()

    await InvalidationDispatcher(query_client).dispatch(
        MutationKind.CREATE_ORDER_CLIENT,
        variables={"clientId": "C1", "bonId": "B1", "quantity": 4},
        result={"status": "success", "order": {"bon_id": "B1"}},
        context={"seasonId": "S1"},
    )

    assert orders_c1.calls == 2
    assert summary_c1.calls == 2
    assert orders_c2.calls == 1


@pytest.mark.asyncio
async def test_workplace_mutation_invalidates_cursor_list(query_client):
    fetcher = CountingFetcher(["wp"])
    query_client.subscribe(qk.workplaces_cursor(20, ""), lambda s: None, fetcher)
    await query_client.settle()

    await InvalidationDispatcher(query_client).dispatch(MutationKind.CREATE_WORKPLACE, variables={"name": "Atelier 41"})

    assert fetcher.calls == 2


@pytest.mark.asyncio
async def test_custom_rules(query_client):
    fetcher = CountingFetcher(1)
    query_client.subscribe(("notes", "n1"), lambda s: None, fetcher)
    await query_client.settle()
    dispatcher = InvalidationDispatcher(query_client, rules={"editNote": (exact("notes", ref("input.id")),)})

    await dispatcher.dispatch("editNote", variables={"id": "n1"})

    assert fetcher.calls == 2
    assert dispatcher.kinds() == ["editNote"]
