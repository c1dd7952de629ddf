"""HTTP client for the workshop API.

Wraps httpx.AsyncClient with the API's conventions:

- JSON bodies and a bearer token on every request
- every network or HTTP failure is raised as TransportError, with the
  server's message when it sent one
- ``errorCode`` 700 / 701 means the session expired; a hook runs (by default
  the console clears its query cache) before the error is raised
"""

import logging
from collections.abc import Callable, Mapping
from typing import Any

import httpx

from atelier_sync.config import get_http_client, settings
from atelier_sync.errors import DEFAULT_ERROR_MESSAGE, TransportError

logger = logging.getLogger(__name__)

SESSION_EXPIRED_CODES = frozenset({700, 701})


def error_message(payload: Any, fallback: str = DEFAULT_ERROR_MESSAGE) -> str:
    """Extract a user-facing message from an error payload.

    ``payload.message`` wins, then ``payload.errors[0].message`` (validation
    errors), then ``fallback``.
    """
    if not isinstance(payload, Mapping):
        return fallback
    if payload.get("message"):
        return str(payload["message"])
    errors = payload.get("errors")
    if isinstance(errors, list) and errors and isinstance(errors[0], Mapping) and errors[0].get("message"):
        return str(errors[0]["message"])
    return fallback


class ApiClient:
    """Async JSON client for the workshop API.

    Example:
        ```python
        api = ApiClient.create(on_session_expired=query_client.clear)
        payload = await api.get("/api/v1/worker/workplace/cursor", params={"take": 20, "cursor": "", "search": ""})
        await api.aclose()
        ```
    """

    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
        on_session_expired: Callable[[], None] | None = None,
    ) -> None:
        """Initialize the API client.

        Args:
            base_url: API root URL. Defaults to settings.api_url.
            token: Bearer token. Defaults to settings.api_token.
            timeout: Request timeout in seconds. Defaults to settings.request_timeout.
            client: Preconfigured httpx client (e.g. with a mock transport)
            on_session_expired: Called when the server reports an expired session
        """
        self._base_url = base_url or settings.api_url
        self._token = token if token is not None else settings.api_token
        self._timeout = timeout or settings.request_timeout
        self._client = client
        self.on_session_expired = on_session_expired

    @property
    def client(self) -> httpx.AsyncClient:
        """Lazy-load the async HTTP client.

        Returns:
            The httpx.AsyncClient instance
        """
        if self._client is None:
            self._client = get_http_client(self._base_url, self._token, self._timeout)
        return self._client

    @classmethod
    def create(
        cls,
        base_url: str | None = None,
        token: str | None = None,
        on_session_expired: Callable[[], None] | None = None,
    ) -> "ApiClient":
        """Factory method to create an ApiClient with defaults from settings.

        Args:
            base_url: API root URL. If None, uses settings.
            token: Bearer token. If None, uses settings.
            on_session_expired: Session-expiry hook

        Returns:
            Configured ApiClient
        """
        return cls(base_url=base_url, token=token, on_session_expired=on_session_expired)

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        json: Any = None,
    ) -> Any:
        """Send a request and return the decoded JSON payload.

        Args:
            method: HTTP method
            path: Path relative to the base URL
            params: Query string parameters
            json: JSON body

        Returns:
            The decoded payload (an empty dict for empty bodies)

        Raises:
            TransportError: On connection failures and non-2xx responses
        """
        try:
            response = await self.client.request(method, path, params=params, json=json)
        except httpx.HTTPError as e:
            logger.warning("%s %s failed: %s", method, path, e)
            raise TransportError(f"No response from server: {e}") from e

        payload = self._decode(response)
        if response.is_error:
            if isinstance(payload, Mapping) and payload.get("errorCode") in SESSION_EXPIRED_CODES:
                logger.info("Session expired (errorCode=%s)", payload["errorCode"])
                if self.on_session_expired is not None:
                    self.on_session_expired()
            message = error_message(payload)
            logger.warning("%s %s returned %d: %s", method, path, response.status_code, message)
            raise TransportError(message, status_code=response.status_code)
        return payload

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError:
            return {}

    async def get(self, path: str, params: Mapping[str, Any] | None = None) -> Any:
        return await self.request("GET", path, params=params)

    async def post(self, path: str, json: Any = None, params: Mapping[str, Any] | None = None) -> Any:
        return await self.request("POST", path, params=params, json=json)

    async def put(self, path: str, json: Any = None, params: Mapping[str, Any] | None = None) -> Any:
        return await self.request("PUT", path, params=params, json=json)

    async def patch(self, path: str, json: Any = None, params: Mapping[str, Any] | None = None) -> Any:
        return await self.request("PATCH", path, params=params, json=json)

    async def delete(self, path: str, params: Mapping[str, Any] | None = None) -> Any:
        return await self.request("DELETE", path, params=params)

    async def aclose(self) -> None:
        """Close the async HTTP client.

        Should be called when shutting down the application.
        """
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def base_url(self) -> str:
        return self._base_url
