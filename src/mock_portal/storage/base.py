"""Storage interfaces for the portal catalogue and the call log."""

from __future__ import annotations

from typing import Protocol

from mock_portal.app.models import Api, LogRecord, LogRecordInput, Route


class RouteRepository(Protocol):
    """Read-only access to apis and their routes."""

    def get_api(self, api_id: str) -> Api | None: ...

    def list_published_apis(self) -> list[Api]: ...

    def get_route(self, route_id: str) -> Route | None: ...

    def list_routes(self, api_id: str) -> list[Route]: ...


class LogStore(Protocol):
    """Append-only call log."""

    def append_log(self, record: LogRecordInput) -> LogRecord: ...

    def recent_logs(self, api_id: str, limit: int) -> list[LogRecord]: ...


class PortalStorage(RouteRepository, LogStore, Protocol):
    def migrate(self) -> None: ...
