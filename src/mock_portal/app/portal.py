"""Read operations consumed by the portal surface and the monitor."""

from __future__ import annotations

from mock_portal.config.settings import DEFAULT_RECENT_LIMIT
from mock_portal.storage.base import LogStore, RouteRepository

from .errors import NotFoundError, QueryError
from .identifiers import validate_id
from .models import Api, LogRecord, Route


def list_published_apis(repo: RouteRepository) -> list[Api]:
    return repo.list_published_apis()


def get_api(raw_api_id: object, repo: RouteRepository) -> Api:
    api_id = validate_id(raw_api_id)
    api = repo.get_api(api_id)
    if api is None:
        raise NotFoundError("API", api_id)
    return api


def list_routes(raw_api_id: object, repo: RouteRepository) -> list[Route]:
    """Routes of one api, ordered by (method, path) for stable display."""
    api_id = validate_id(raw_api_id)
    return repo.list_routes(api_id)


def fetch_recent_logs(
    raw_api_id: object,
    logs: LogStore,
    limit: int = DEFAULT_RECENT_LIMIT,
) -> list[LogRecord]:
    """The last `limit` log records for an api, newest first."""
    api_id = validate_id(raw_api_id)
    if limit < 1:
        raise QueryError(f"limit must be >= 1, got {limit}")
    return logs.recent_logs(api_id, limit)
