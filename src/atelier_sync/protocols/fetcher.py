"""Fetcher protocol.

Defines the contract for any remote call the core issues on behalf of a
mutation. Implementations can include:
- The HTTP workshop API (default)
- In-memory fakes for tests
"""

from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Fetcher(Protocol):
    """Protocol for remote mutation calls.

    The call returns a payload shaped like
    ``{"status": "success" | "failed", "message": str, ...}``. A thrown
    TransportError and a ``status: "failed"`` payload are handled the same
    way: no mutation occurred, show the message, skip invalidation.

    Example:
        ```python
        async def create_week(params):
            return await api.post("/api/v1/worker/week/create", json=params)

        call: Fetcher = create_week
        ```
    """

    async def __call__(self, params: Mapping[str, Any]) -> Mapping[str, Any]:
        """Perform the remote call.

        Args:
            params: The mutation's input

        Returns:
            The response payload

        Raises:
            TransportError: On network or HTTP failure
        """
        ...
