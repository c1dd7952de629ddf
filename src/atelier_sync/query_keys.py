"""Query key registry.

Pure functions deriving cache keys from entity identity and active filters.
Every ``*_root`` function returns the prefix that covers all variants of the
matching list (any page, limit, search or sort), which is what invalidation
rules target.
"""

from collections.abc import Mapping, Sequence
from typing import Any

from atelier_sync.entities import QueryKey, make_key

# Resource names: first element of every key
CLIENTS = "clients"
ACTIVE_CLIENTS = "activeClients"
ORDERS_CLIENT = "ordersClient"
CLIENT_SUMMARY = "clientSummary"
FACONNIERS = "faconniers"
ACTIVE_FACONNIERS = "activeFaconniers"
ORDERS_FACONNIER = "ordersFaconnier"
FACONNIER_SUMMARY = "faconnierSummary"
STYLISTS = "stylists"
ACTIVE_STYLISTS = "activeStylists"
ORDERS_STYLIST = "ordersStylist"
STYLIST_SUMMARY = "stylistSummary"
PRODUCTS = "products"
PRODUCTS_STATUS = "productsStatus"
STOCK_RETURN = "stock-return"
STOCK_RETURN_SUMMARY = "stock-return-summary"
SEASONS = "seasons"
USERS = "users"
GENERAL_SETTINGS = "generalSettings"
SUMMARY = "summary"
RETARD_ORDERS_FACONNIER = "retardOrdersFaconnier"
WORKPLACES = "workplaces"
WORKPLACES_CURSOR = "workplaces-cursor"
WORKERS = "workers"
WORKERS_CURSOR = "workers-cursor"
WEEKS_CURSOR = "weeks-cursor"
YEARS_CURSOR = "years-cursor"
WEEK_RECORDS = "week-records"
YEAR_RECORDS = "year-records"
WORKERS_SUMMARY = "workers-summary"
WORKER_RECORDS = "worker-records"
WORKER_SUMMARY = "worker-summary"

# Counterparties that share the bon / order / avance / summary key shapes
COUNTERPARTY_KEYS = {
    "client": (CLIENTS, ACTIVE_CLIENTS, ORDERS_CLIENT, CLIENT_SUMMARY),
    "faconnier": (FACONNIERS, ACTIVE_FACONNIERS, ORDERS_FACONNIER, FACONNIER_SUMMARY),
    "stylist": (STYLISTS, ACTIVE_STYLISTS, ORDERS_STYLIST, STYLIST_SUMMARY),
}


def root(resource: str) -> QueryKey:
    return make_key(resource)


# Clients


def clients(page: int, limit: int, search: str = "") -> QueryKey:
    return make_key(CLIENTS, page, limit, search)


def active_clients(season_id: str, open_bon: bool = True, closed_bon: bool = False) -> QueryKey:
    return make_key(ACTIVE_CLIENTS, season_id, open_bon, closed_bon)


def orders_client(season_id: str, client_id: str, bon_id: str, params: Mapping[str, Any] | None = None) -> QueryKey:
    return make_key(ORDERS_CLIENT, season_id, client_id, bon_id, params or {})


def client_summary(season_id: str, client_id: str, bon_id: str) -> QueryKey:
    return make_key(CLIENT_SUMMARY, season_id, client_id, bon_id)


# Faconniers


def faconniers(page: int, limit: int, search: str = "") -> QueryKey:
    return make_key(FACONNIERS, page, limit, search)


def active_faconniers(season_id: str, open_bon: bool = True, closed_bon: bool = False) -> QueryKey:
    return make_key(ACTIVE_FACONNIERS, season_id, open_bon, closed_bon)


def orders_faconnier(
    season_id: str, faconnier_id: str, bon_id: str, params: Mapping[str, Any] | None = None
) -> QueryKey:
    return make_key(ORDERS_FACONNIER, season_id, faconnier_id, bon_id, params or {})


def faconnier_summary(season_id: str, faconnier_id: str, bon_id: str) -> QueryKey:
    return make_key(FACONNIER_SUMMARY, season_id, faconnier_id, bon_id)


# Stylists


def stylists(types: Sequence[str], page: int, limit: int, search: str = "") -> QueryKey:
    return make_key(STYLISTS, sorted(types), page, limit, search)


def active_stylists(season_id: str, open_bon: bool = True, closed_bon: bool = False) -> QueryKey:
    return make_key(ACTIVE_STYLISTS, season_id, open_bon, closed_bon)


def orders_stylist(season_id: str, stylist_id: str, bon_id: str, params: Mapping[str, Any] | None = None) -> QueryKey:
    return make_key(ORDERS_STYLIST, season_id, stylist_id, bon_id, params or {})


def stylist_summary(season_id: str, stylist_id: str, bon_id: str) -> QueryKey:
    return make_key(STYLIST_SUMMARY, season_id, stylist_id, bon_id)


# Products, stock returns, dashboard


def products(season_id: str, page: int, limit: int, search: str = "") -> QueryKey:
    return make_key(PRODUCTS, season_id, page, limit, search)


def products_root(season_id: str) -> QueryKey:
    return make_key(PRODUCTS, season_id)


def products_status(season_id: str) -> QueryKey:
    return make_key(PRODUCTS_STATUS, season_id)


def stock_return(season_id: str, page: int, limit: int, search: str = "") -> QueryKey:
    return make_key(STOCK_RETURN, season_id, page, limit, search)


def stock_return_root(season_id: str) -> QueryKey:
    return make_key(STOCK_RETURN, season_id)


def stock_return_summary(season_id: str) -> QueryKey:
    return make_key(STOCK_RETURN_SUMMARY, season_id)


def dashboard_summary(season_id: str) -> QueryKey:
    return make_key(SUMMARY, season_id)


def retard_orders_faconnier(season_id: str) -> QueryKey:
    return make_key(RETARD_ORDERS_FACONNIER, season_id)


def general_settings() -> QueryKey:
    return make_key(GENERAL_SETTINGS)


def seasons(page: int, limit: int, search: str = "") -> QueryKey:
    return make_key(SEASONS, page, limit, search)


def users(page: int, limit: int, search: str = "") -> QueryKey:
    return make_key(USERS, page, limit, search)


# Workers and workplaces


def workplaces(page: int, limit: int, search: str = "") -> QueryKey:
    return make_key(WORKPLACES, page, limit, search)


def workers(active: Sequence[str], page: int, limit: int, search: str = "") -> QueryKey:
    return make_key(WORKERS, sorted(active), page, limit, search)


def cursor_list(resource: str, filter_key: Sequence[Any], take: int, search: str) -> QueryKey:
    """Key of a cursor list: ``(resource, *filters, take, search)``.

    The cursor itself is not part of the key; all pages of one list live in
    a single entry.
    """
    return make_key(resource, *filter_key, take, search)


def workplaces_cursor(take: int, search: str = "") -> QueryKey:
    return cursor_list(WORKPLACES_CURSOR, (), take, search)


def workers_cursor(take: int, search: str = "") -> QueryKey:
    return cursor_list(WORKERS_CURSOR, (), take, search)


def weeks_cursor(workplace_id: str, take: int, search: str = "") -> QueryKey:
    return cursor_list(WEEKS_CURSOR, (workplace_id,), take, search)


def weeks_cursor_root(workplace_id: str) -> QueryKey:
    return make_key(WEEKS_CURSOR, workplace_id)


def years_cursor(workplace_id: str, take: int, search: str = "") -> QueryKey:
    return cursor_list(YEARS_CURSOR, (workplace_id,), take, search)


def years_cursor_root(workplace_id: str) -> QueryKey:
    return make_key(YEARS_CURSOR, workplace_id)


def week_records(week_id: str, workplace_id: str) -> QueryKey:
    return make_key(WEEK_RECORDS, week_id, workplace_id)


def year_records(year: str | None, workplace_id: str) -> QueryKey:
    return make_key(YEAR_RECORDS, year, workplace_id)


def workers_summary(workplace_id: str, week_id: str) -> QueryKey:
    return make_key(WORKERS_SUMMARY, workplace_id, week_id)


def worker_records(worker_id: str, limit: int, page: int) -> QueryKey:
    return make_key(WORKER_RECORDS, worker_id, limit, page)


def worker_summary(worker_id: str) -> QueryKey:
    return make_key(WORKER_SUMMARY, worker_id)
