"""Repository layer for data access.

This layer wraps the remote workshop API behind the protocol-based
interfaces the services depend on (CursorResource, Fetcher). This enables:
- Swapping the HTTP API for in-memory fakes in tests
- Keeping HTTP conventions (auth, error payloads) out of the services

The repositories are protocol-based (structural typing), not inheritance-based.
Any class implementing the required methods will satisfy the protocol.
"""

from .api_client import SESSION_EXPIRED_CODES, ApiClient, error_message
from .workshop_api import MUTATION_ENDPOINTS, HttpCursorResource, MutationEndpoint, WorkshopApi

__all__ = [
    "MUTATION_ENDPOINTS",
    "SESSION_EXPIRED_CODES",
    "ApiClient",
    "HttpCursorResource",
    "MutationEndpoint",
    "WorkshopApi",
    "error_message",
]
