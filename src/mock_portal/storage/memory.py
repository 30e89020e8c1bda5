"""In-memory storage backend for tests and local demos."""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterable
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from mock_portal.app.errors import QueryError
from mock_portal.app.models import Api, ApiStatus, LogRecord, LogRecordInput, Route


class InMemoryPortalStorage:
    """Simple in-memory implementation of the route repository and log store."""

    def __init__(self, *, clock: Callable[[], datetime] | None = None) -> None:
        self._lock = threading.Lock()
        self._clock = clock or (lambda: datetime.now(UTC))
        self._apis: dict[str, Api] = {}
        self._routes: dict[str, Route] = {}
        # Insertion order doubles as the tie-breaker for equal timestamps.
        self._logs: list[LogRecord] = []
        self._last_created_at: datetime | None = None

    def migrate(self) -> None:
        return None

    def add_api(
        self,
        *,
        name: str,
        version: str,
        description: str | None = None,
        status: ApiStatus = "published",
        api_id: str | None = None,
        created_at: datetime | None = None,
    ) -> Api:
        api = Api(
            id=api_id or str(uuid4()),
            name=name,
            version=version,
            description=description,
            status=status,
            created_at=created_at or datetime.now(UTC),
        )
        with self._lock:
            self._apis[api.id] = api
        return api

    def add_route(
        self,
        *,
        api_id: str,
        method: str,
        path: str,
        enabled: bool = True,
        status_code: int | None = None,
        mock_response_json: Any = None,
        route_id: str | None = None,
    ) -> Route:
        with self._lock:
            if api_id not in self._apis:
                raise KeyError(f"Api {api_id} does not exist")
            route = Route(
                id=route_id or str(uuid4()),
                api_id=api_id,
                method=method.upper(),
                path=path,
                enabled=enabled,
                status_code=status_code,
                mock_response_json=mock_response_json,
            )
            self._routes[route.id] = route
        return route

    def get_api(self, api_id: str) -> Api | None:
        api = self._apis.get(api_id)
        return api.model_copy(deep=True) if api else None

    def list_published_apis(self) -> list[Api]:
        with self._lock:
            published = [api for api in self._apis.values() if api.status == "published"]
        minimum = datetime.min.replace(tzinfo=UTC)
        published.sort(key=lambda api: api.created_at or minimum, reverse=True)
        return [api.model_copy(deep=True) for api in published]

    def get_route(self, route_id: str) -> Route | None:
        route = self._routes.get(route_id)
        return route.model_copy(deep=True) if route else None

    def list_routes(self, api_id: str) -> list[Route]:
        with self._lock:
            routes = [route for route in self._routes.values() if route.api_id == api_id]
        routes.sort(key=lambda route: (route.method, route.path))
        return [route.model_copy(deep=True) for route in routes]

    def append_log(self, record: LogRecordInput) -> LogRecord:
        with self._lock:
            now = self._clock()
            # Keep created_at non-decreasing even if the wall clock steps back.
            if self._last_created_at is not None and now < self._last_created_at:
                now = self._last_created_at
            self._last_created_at = now
            stored = LogRecord(id=str(uuid4()), created_at=now, **record.model_dump())
            self._logs.append(stored)
        return stored.model_copy()

    def recent_logs(self, api_id: str, limit: int) -> list[LogRecord]:
        if limit < 1:
            raise QueryError(f"limit must be >= 1, got {limit}")
        with self._lock:
            indexed = [
                (position, record)
                for position, record in enumerate(self._logs)
                if record.api_id == api_id
            ]
        indexed.sort(key=lambda item: (item[1].created_at, item[0]), reverse=True)
        return [record.model_copy() for _, record in indexed[:limit]]

    def load_logs(self, records: Iterable[LogRecord]) -> None:
        """Seed already-persisted records (for example an exported log) as-is."""
        with self._lock:
            for record in records:
                self._logs.append(record.model_copy())
                if self._last_created_at is None or record.created_at > self._last_created_at:
                    self._last_created_at = record.created_at

    def log_count(self) -> int:
        with self._lock:
            return len(self._logs)
