"""Handler layer for HTTP endpoints.

This layer contains the HTTP request/response handlers.
Handlers depend on services (business logic), not directly on the HTTP
client underneath the repositories.

Architecture:
    Handler -> Service -> Repository
    (HTTP)  -> (Business) -> (Data Access)
"""

from .console_handler import ConsoleHandler, to_jsonable

__all__ = [
    "ConsoleHandler",
    "to_jsonable",
]
