"""Mutation runner.

Runs one remote write, normalizes its result into a MutationOutcome, surfaces
a notification, and only on success hands the outcome to the invalidation
dispatcher.
"""

import logging
from collections.abc import Callable, Mapping
from typing import Any

from atelier_sync.entities import MutationOutcome, Notification, OutcomeStatus
from atelier_sync.errors import DEFAULT_ERROR_MESSAGE, ApplicationFailure, TransportError
from atelier_sync.protocols import Fetcher, Notifier

from .invalidation import InvalidationDispatcher

logger = logging.getLogger(__name__)

Validator = Callable[[Mapping[str, Any]], None]


def normalize_payload(kind: str, payload: Any) -> MutationOutcome:
    """Turn an HTTP-success payload into an outcome.

    A payload reporting ``status == "failed"`` is an application failure:
    no mutation occurred.
    """
    if not isinstance(payload, Mapping):
        payload = {"data": payload}
    payload = dict(payload)
    if payload.get("status") == "failed":
        return MutationOutcome(
            kind=kind,
            status=OutcomeStatus.FAILED,
            message=payload.get("message") or DEFAULT_ERROR_MESSAGE,
            payload=payload,
        )
    return MutationOutcome(
        kind=kind,
        status=OutcomeStatus.SUCCESS,
        message=payload.get("message") or "",
        payload=payload,
    )


class MutationRunner:
    """Run mutations and keep the cache consistent afterwards.

    Example:
        ```python
        runner = MutationRunner(InvalidationDispatcher(client), notifications)
        outcome = await runner.run(
            MutationKind.CREATE_ORDER_CLIENT,
            api.mutation_call(MutationKind.CREATE_ORDER_CLIENT, context),
            {"clientId": "C1", "bonId": "B1", "quantity": 4},
            context={"seasonId": "S1"},
        )
        outcome.succeeded  # True; order lists of C1/B1 were refetched
        ```
    """

    def __init__(self, dispatcher: InvalidationDispatcher, notifier: Notifier | None = None) -> None:
        """Initialize the runner.

        Args:
            dispatcher: Invalidation dispatcher bound to the query client
            notifier: Where success and failure messages go. None disables
                notifications.
        """
        self._dispatcher = dispatcher
        self._notifier = notifier

    async def run(
        self,
        kind: str,
        call: Fetcher,
        variables: Mapping[str, Any] | None = None,
        *,
        context: Mapping[str, Any] | None = None,
        validate: Validator | None = None,
        label: str | None = None,
    ) -> MutationOutcome:
        """Run one mutation.

        The remote call is issued exactly once; mutations are never retried.
        Invalidation happens strictly after the response and only when the
        mutation succeeded.

        Args:
            kind: Mutation kind (key of the invalidation table)
            call: The remote call
            variables: The mutation's input
            context: Ambient values referenced by invalidation rules
                (e.g. ``seasonId``)
            validate: Optional input check run before anything is sent
            label: Notification title. Defaults to the kind.

        Returns:
            The normalized outcome

        Raises:
            ValidationError: If ``validate`` rejects the input
            UnknownMutationError: If ``kind`` has no invalidation rule
        """
        variables = dict(variables or {})
        self._dispatcher.ensure_known(kind)
        if validate is not None:
            validate(variables)

        logger.info("Running mutation %s", kind)
        try:
            payload = await call(variables)
        except TransportError as error:
            outcome = MutationOutcome(
                kind=kind,
                status=OutcomeStatus.ERROR,
                message=error.message,
                error=error,
            )
        except ApplicationFailure as error:
            outcome = MutationOutcome(
                kind=kind,
                status=OutcomeStatus.FAILED,
                message=error.message,
                payload=dict(error.payload),
            )
        else:
            outcome = normalize_payload(kind, payload)

        self._notify(outcome, label or str(kind))

        if not outcome.succeeded:
            logger.warning("Mutation %s %s: %s", kind, outcome.status, outcome.message)
            return outcome

        await self._dispatcher.dispatch(kind, variables, outcome.payload, context)
        return outcome

    def _notify(self, outcome: MutationOutcome, title: str) -> None:
        if self._notifier is None:
            return
        if outcome.succeeded:
            notification = Notification(title=title, message=outcome.message or "Done")
        else:
            notification = Notification(
                title=title,
                message=outcome.message or DEFAULT_ERROR_MESSAGE,
                variant="destructive",
            )
        self._notifier.notify(notification)

    @property
    def dispatcher(self) -> InvalidationDispatcher:
        """Get the invalidation dispatcher."""
        return self._dispatcher
