"""Error taxonomy for the portal core.

Every error is terminal for the current operation; nothing in the core retries.
"""

from __future__ import annotations


class PortalError(Exception):
    """Base class for all portal errors."""


class InvalidIdError(PortalError):
    """Identifier is missing, a placeholder, or not a canonical UUID."""

    def __init__(self, candidate: object, reason: str) -> None:
        self.candidate = candidate
        self.reason = reason
        super().__init__(f"{reason}: {candidate!r}")


class NotFoundError(PortalError):
    """Well-formed id with no matching row."""

    def __init__(self, kind: str, identifier: str) -> None:
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind} not found: {identifier}")


class RouteDisabledError(PortalError):
    """Route exists but invocation is forbidden."""

    def __init__(self, route_id: str) -> None:
        self.route_id = route_id
        super().__init__(f"Route disabled: {route_id}")


class StorageError(PortalError):
    """Storage-layer failure, surfaced verbatim."""


class QueryError(StorageError):
    """A read against storage failed."""


class WriteError(StorageError):
    """An append to storage failed."""
