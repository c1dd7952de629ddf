"""Invalidation dispatcher and the static mutation -> key-prefix table.

A mutation touches one entity, but list caches are keyed by page, search and
sort variants that are unknown when the mutation runs. Each rule therefore
names key *prefixes*: one rule invalidates "all order lists of client X" no
matter which page or filter was cached.

Template parts are literals or ``Ref`` objects pointing into the mutation's
input (``input.*``), its response payload (``result.*``) or the caller's
context (``context.*``, e.g. the active season id).
"""

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from atelier_sync import query_keys as qk
from atelier_sync.entities import MutationOutcome, QueryKey, make_key
from atelier_sync.errors import UnknownMutationError

from .query_client import QueryClient

logger = logging.getLogger(__name__)


class MutationKind(StrEnum):
    """Every write the console can perform."""

    CREATE_CLIENT = "createClient"
    UPDATE_CLIENT = "updateClient"
    DELETE_CLIENT = "deleteClient"
    UPDATE_CLIENT_STATUS = "updateClientStatus"
    CREATE_BON_CLIENT = "createBonClient"
    TOGGLE_BON_CLIENT = "toggleBonClient"
    DELETE_BON_CLIENT = "deleteBonClient"
    CREATE_ORDER_CLIENT = "createOrderClient"
    CREATE_MULTIPLE_ORDERS_CLIENT = "createMultipleOrdersClient"
    UPDATE_ORDER_CLIENT = "updateOrderClient"
    DELETE_ORDER_CLIENT = "deleteOrderClient"
    CREATE_AVANCE_CLIENT = "createAvanceClient"
    DELETE_AVANCE_CLIENT = "deleteAvanceClient"

    CREATE_FACONNIER = "createFaconnier"
    UPDATE_FACONNIER = "updateFaconnier"
    DELETE_FACONNIER = "deleteFaconnier"
    UPDATE_FACONNIER_STATUS = "updateFaconnierStatus"
    CREATE_BON_FACONNIER = "createBonFaconnier"
    TOGGLE_BON_FACONNIER = "toggleBonFaconnier"
    DELETE_BON_FACONNIER = "deleteBonFaconnier"
    CREATE_ORDER_FACONNIER = "createOrderFaconnier"
    UPDATE_ORDER_FACONNIER = "updateOrderFaconnier"
    DELETE_ORDER_FACONNIER = "deleteOrderFaconnier"
    CREATE_AVANCE_FACONNIER = "createAvanceFaconnier"
    DELETE_AVANCE_FACONNIER = "deleteAvanceFaconnier"

    CREATE_STYLIST = "createStylist"
    UPDATE_STYLIST = "updateStylist"
    DELETE_STYLIST = "deleteStylist"
    UPDATE_STYLIST_STATUS = "updateStylistStatus"
    CREATE_BON_STYLIST = "createBonStylist"
    TOGGLE_BON_STYLIST = "toggleBonStylist"
    DELETE_BON_STYLIST = "deleteBonStylist"
    CREATE_ORDER_STYLIST = "createOrderStylist"
    UPDATE_ORDER_STYLIST = "updateOrderStylist"
    DELETE_ORDER_STYLIST = "deleteOrderStylist"
    CREATE_AVANCE_STYLIST = "createAvanceStylist"
    DELETE_AVANCE_STYLIST = "deleteAvanceStylist"

    CREATE_PRODUCT = "createProduct"
    UPDATE_PRODUCT = "updateProduct"
    DELETE_PRODUCT = "deleteProduct"

    UPDATE_RETURN_STOCK = "updateClientReturnStock"
    DELETE_RETURN_STOCK = "deleteClientReturnStock"
    CREATE_ORDER_FROM_RETURN_STOCK = "createOrderClientFromReturnStock"

    CREATE_SEASON = "createSeason"
    UPDATE_SEASON = "updateSeason"
    DELETE_SEASON = "deleteSeason"
    TOGGLE_SEASON = "toggleSeason"

    CREATE_USER = "createUser"
    UPDATE_USER = "updateUser"
    DELETE_USER = "deleteUser"

    CREATE_WORKPLACE = "createWorkplace"
    UPDATE_WORKPLACE = "updateWorkplace"
    DELETE_WORKPLACE = "deleteWorkplace"

    CREATE_WORKER = "createWorker"
    UPDATE_WORKER = "updateWorker"
    DELETE_WORKER = "deleteWorker"
    UPDATE_WORKER_STATUS = "updateWorkerStatus"

    CREATE_WEEK = "createWeek"
    UPDATE_WEEK = "updateWeek"
    DELETE_WEEK = "deleteWeek"

    CREATE_WEEK_RECORD = "createWeekRecord"
    UPDATE_WEEK_RECORD = "updateWeekRecord"
    UPDATE_WEEK_RECORD_PAYMENT = "updateWeekRecordPayment"
    DELETE_WEEK_RECORD = "deleteWeekRecord"


_MISSING = object()


@dataclass(frozen=True)
class Ref:
    """Reference to a value of the settled mutation.

    ``paths`` are tried in order; the first one that resolves to a non-empty
    value wins. Each path starts with ``input``, ``result`` or ``context``.
    """

    paths: tuple[str, ...]

    def resolve(self, scope: Mapping[str, Any]) -> Any:
        for path in self.paths:
            value = _lookup(scope, path)
            if value is not _MISSING and value is not None and value != "":
                return value
        return _MISSING


def ref(*paths: str) -> Ref:
    return Ref(paths=paths)


SEASON = ref("context.seasonId", "input.seasonId")


@dataclass(frozen=True)
class PrefixTemplate:
    """A key prefix (or exact key) with unresolved references."""

    parts: tuple[Any, ...]
    exact: bool = False

    def resolve(self, scope: Mapping[str, Any]) -> QueryKey | None:
        """Resolve every reference; None if one of them is missing."""
        resolved = []
        for part in self.parts:
            if isinstance(part, Ref):
                part = part.resolve(scope)
                if part is _MISSING:
                    return None
            resolved.append(part)
        return make_key(*resolved)


def prefix(*parts: Any) -> PrefixTemplate:
    return PrefixTemplate(parts=parts)


def exact(*parts: Any) -> PrefixTemplate:
    return PrefixTemplate(parts=parts, exact=True)


def _lookup(scope: Mapping[str, Any], path: str) -> Any:
    current: Any = scope
    for name in path.split("."):
        if isinstance(current, Mapping) and name in current:
            current = current[name]
        else:
            return _MISSING
    return current


def _counterparty_rules(party: str) -> dict[str, tuple[PrefixTemplate, ...]]:
    """Rules shared by clients, faconniers and stylists."""
    listing, active, orders, summary = qk.COUNTERPARTY_KEYS[party]
    title = party.capitalize()
    party_id = ref(f"input.{party}Id")
    bon_id = ref("input.bonId", "result.order.bon_id", "result.order.bonId")

    orders_of_bon = prefix(orders, SEASON, party_id, bon_id)
    summary_of_bon = prefix(summary, SEASON, party_id, bon_id)
    products = prefix(qk.PRODUCTS, SEASON)

    return {
        f"create{title}": (prefix(listing), prefix(active, SEASON)),
        f"update{title}": (prefix(listing), prefix(active, SEASON)),
        f"delete{title}": (prefix(listing), prefix(active, SEASON)),
        f"update{title}Status": (prefix(listing), prefix(active, SEASON)),
        f"createBon{title}": (prefix(active, SEASON),),
        f"toggleBon{title}": (prefix(active, SEASON),),
        f"deleteBon{title}": (prefix(active, SEASON), prefix(orders, SEASON, party_id)),
        f"createOrder{title}": (orders_of_bon, prefix(summary, SEASON, party_id), products),
        f"updateOrder{title}": (
            orders_of_bon,
            summary_of_bon,
            products,
            prefix(qk.STOCK_RETURN, SEASON),
        ),
        f"deleteOrder{title}": (orders_of_bon, summary_of_bon, products),
        f"createAvance{title}": (orders_of_bon, summary_of_bon, prefix(qk.SUMMARY, SEASON)),
        f"deleteAvance{title}": (orders_of_bon, summary_of_bon, prefix(qk.SUMMARY, SEASON)),
    }


def _build_rules() -> dict[MutationKind, tuple[PrefixTemplate, ...]]:
    rules: dict[str, tuple[PrefixTemplate, ...]] = {}
    for party in qk.COUNTERPARTY_KEYS:
        rules.update(_counterparty_rules(party))

    rules[MutationKind.CREATE_MULTIPLE_ORDERS_CLIENT] = (
        prefix(qk.ORDERS_CLIENT, SEASON, ref("input.clientId")),
        prefix(qk.CLIENT_SUMMARY, SEASON, ref("input.clientId")),
        prefix(qk.PRODUCTS, SEASON),
    )

    products = (prefix(qk.PRODUCTS, SEASON), prefix(qk.PRODUCTS_STATUS, SEASON))
    rules[MutationKind.CREATE_PRODUCT] = products
    rules[MutationKind.UPDATE_PRODUCT] = products
    rules[MutationKind.DELETE_PRODUCT] = products

    returned_client = ref("result.data.clientId")
    returned_bon = ref("result.data.bonId")
    stock_return = (prefix(qk.STOCK_RETURN, SEASON), prefix(qk.STOCK_RETURN_SUMMARY, SEASON))
    rules[MutationKind.UPDATE_RETURN_STOCK] = (
        *stock_return,
        prefix(qk.ORDERS_CLIENT, SEASON, returned_client, returned_bon),
    )
    rules[MutationKind.DELETE_RETURN_STOCK] = rules[MutationKind.UPDATE_RETURN_STOCK]
    rules[MutationKind.CREATE_ORDER_FROM_RETURN_STOCK] = (
        *stock_return,
        prefix(qk.ORDERS_CLIENT, SEASON, returned_client, returned_bon),
        prefix(qk.CLIENT_SUMMARY, SEASON, returned_client),
        prefix(qk.PRODUCTS, SEASON),
    )

    for kind in (
        MutationKind.CREATE_SEASON,
        MutationKind.UPDATE_SEASON,
        MutationKind.DELETE_SEASON,
        MutationKind.TOGGLE_SEASON,
    ):
        rules[kind] = (prefix(qk.SEASONS),)

    for kind in (MutationKind.CREATE_USER, MutationKind.UPDATE_USER, MutationKind.DELETE_USER):
        rules[kind] = (prefix(qk.USERS),)

    for kind in (MutationKind.CREATE_WORKPLACE, MutationKind.UPDATE_WORKPLACE, MutationKind.DELETE_WORKPLACE):
        rules[kind] = (prefix(qk.WORKPLACES), prefix(qk.WORKPLACES_CURSOR))

    for kind in (
        MutationKind.CREATE_WORKER,
        MutationKind.UPDATE_WORKER,
        MutationKind.DELETE_WORKER,
        MutationKind.UPDATE_WORKER_STATUS,
    ):
        rules[kind] = (prefix(qk.WORKERS), prefix(qk.WORKERS_CURSOR))

    workplace = ref("input.workplaceId")
    for kind in (MutationKind.CREATE_WEEK, MutationKind.UPDATE_WEEK, MutationKind.DELETE_WEEK):
        rules[kind] = (prefix(qk.WEEKS_CURSOR, workplace), prefix(qk.YEARS_CURSOR, workplace))

    week_records = exact(qk.WEEK_RECORDS, ref("input.weekId"), workplace)
    workers_summary = prefix(qk.WORKERS_SUMMARY, workplace, ref("input.weekId"))
    rules[MutationKind.CREATE_WEEK_RECORD] = (week_records, workers_summary)
    rules[MutationKind.UPDATE_WEEK_RECORD] = (
        week_records,
        workers_summary,
        prefix(qk.WORKER_RECORDS),
        prefix(qk.WORKER_SUMMARY),
    )
    rules[MutationKind.UPDATE_WEEK_RECORD_PAYMENT] = (week_records, workers_summary, prefix(qk.WORKER_RECORDS))
    rules[MutationKind.DELETE_WEEK_RECORD] = rules[MutationKind.UPDATE_WEEK_RECORD]

    return {MutationKind(kind): templates for kind, templates in rules.items()}


INVALIDATION_RULES: Mapping[MutationKind, tuple[PrefixTemplate, ...]] = _build_rules()


class InvalidationDispatcher:
    """Turn a settled mutation into concrete cache invalidations.

    Example:
        ```python
        dispatcher = InvalidationDispatcher(client)
        await dispatcher.dispatch(
            MutationKind.CREATE_ORDER_CLIENT,
            variables={"clientId": "C1", "bonId": "B1"},
            result=payload,
            context={"seasonId": "S1"},
        )
        ```
    """

    def __init__(
        self,
        client: QueryClient,
        rules: Mapping[str, Sequence[PrefixTemplate]] | None = None,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            client: Query client whose cache is invalidated
            rules: Rule table. Defaults to INVALIDATION_RULES.
        """
        self._client = client
        self._rules = INVALIDATION_RULES if rules is None else rules

    def resolve(
        self,
        kind: str,
        variables: Mapping[str, Any] | None = None,
        result: Mapping[str, Any] | None = None,
        context: Mapping[str, Any] | None = None,
    ) -> list[tuple[QueryKey, bool]]:
        """Resolve the rule for ``kind`` into concrete ``(prefix, exact)`` pairs.

        Templates whose references cannot be resolved are skipped.

        Raises:
            UnknownMutationError: If no rule exists for ``kind``
        """
        templates = self._templates(kind)

        scope = {"input": variables or {}, "result": result or {}, "context": context or {}}
        resolved: list[tuple[QueryKey, bool]] = []
        for template in templates:
            key = template.resolve(scope)
            if key is None:
                logger.warning("Skipping invalidation %r for %s: unresolved reference", template.parts, kind)
                continue
            if (key, template.exact) not in resolved:
                resolved.append((key, template.exact))
        return resolved

    async def dispatch(
        self,
        kind: str,
        variables: Mapping[str, Any] | None = None,
        result: Mapping[str, Any] | None = None,
        context: Mapping[str, Any] | None = None,
    ) -> list[tuple[QueryKey, bool]]:
        """Invalidate every region the rule for ``kind`` names, in table order.

        Returns:
            The resolved ``(prefix, exact)`` pairs
        """
        resolved = self.resolve(kind, variables, result, context)
        for key, is_exact in resolved:
            await self._client.invalidate(key, exact=is_exact)
        return resolved

    async def dispatch_outcome(
        self,
        outcome: MutationOutcome,
        variables: Mapping[str, Any] | None = None,
        context: Mapping[str, Any] | None = None,
    ) -> list[tuple[QueryKey, bool]]:
        """Dispatch only when ``outcome`` succeeded; failures invalidate nothing."""
        if not outcome.succeeded:
            logger.info("Skipping invalidation for failed %s: %s", outcome.kind, outcome.message)
            return []
        return await self.dispatch(outcome.kind, variables, outcome.payload, context)

    def ensure_known(self, kind: str) -> None:
        """Raise UnknownMutationError if no rule exists for ``kind``."""
        self._templates(kind)

    def _templates(self, kind: str) -> Sequence[PrefixTemplate]:
        try:
            return self._rules[kind]
        except KeyError:
            raise UnknownMutationError(str(kind)) from None

    def kinds(self) -> list[str]:
        """List the mutation kinds this dispatcher knows."""
        return [str(kind) for kind in self._rules]

    @property
    def rules(self) -> Mapping[str, Sequence[PrefixTemplate]]:
        """Get the rule table."""
        return self._rules
