"""
Tests for default selection of single-select pickers.
"""

import pytest

from atelier_sync.services import CursorPaginator, DefaultSelection, pick_default
from tests.fakes import FakeCursorResource, make_workplaces


def test_pick_default():
    items = make_workplaces(3)

    assert pick_default(None, items) == "wp-1"
    assert pick_default("wp-3", items) == "wp-3"
    assert pick_default(None, []) is None
    assert pick_default(None, [{"code": "A"}], id_of=lambda item: item["code"]) == "A"


@pytest.mark.asyncio
async def test_first_item_is_selected_once_loaded(query_client, workplaces_resource, scheduler):
    paginator = CursorPaginator(query_client, workplaces_resource, page_size=15, scheduler=scheduler)
    changes = []
    selection = DefaultSelection(paginator, on_change=changes.append)
    assert selection.value is None

    paginator.mount()
    await query_client.settle()

    assert selection.value == "wp-1"
    assert changes == ["wp-1"]


@pytest.mark.asyncio
async def test_existing_selection_is_kept(query_client, workplaces_resource, scheduler):
    paginator = CursorPaginator(query_client, workplaces_resource, page_size=15, scheduler=scheduler)
    changes = []
    selection = DefaultSelection(paginator, on_change=changes.append, value="wp-7")

    paginator.mount()
    await query_client.settle()
    await paginator.fetch_next_page()

    assert selection.value == "wp-7"
    assert changes == []


@pytest.mark.asyncio
async def test_select_and_clear(query_client, workplaces_resource, scheduler):
    paginator = CursorPaginator(query_client, workplaces_resource, page_size=15, scheduler=scheduler).mount()
    await query_client.settle()
    selection = DefaultSelection(paginator)
    assert selection.value == "wp-1"

    selection.select("wp-9")
    assert selection.value == "wp-9"

    selection.clear()
    assert selection.value == "wp-1"


@pytest.mark.asyncio
async def test_empty_list_selects_nothing(query_client, scheduler):
    paginator = CursorPaginator(query_client, FakeCursorResource([]), scheduler=scheduler).mount()
    selection = DefaultSelection(paginator)
    await query_client.settle()

    assert selection.value is None


@pytest.mark.asyncio
async def test_closed_selection_stops_following(query_client, workplaces_resource, scheduler):
    paginator = CursorPaginator(query_client, workplaces_resource, page_size=15, scheduler=scheduler)
    selection = DefaultSelection(paginator)
    selection.close()

    paginator.mount()
    await query_client.settle()

    assert selection.value is None
