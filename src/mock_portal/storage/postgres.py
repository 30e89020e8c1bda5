"""PostgreSQL storage backend for the portal catalogue and call log.

Beginner terms:
- Migration: creating/updating database tables before normal reads/writes.
- JSONB: PostgreSQL JSON type used for mock response bodies.
- RETURNING: lets an INSERT hand back the row the database just wrote,
  including server-assigned defaults like ids and timestamps.
- Row factory: returns query rows as dict-like objects instead of tuples.
"""

from __future__ import annotations

import logging
import threading
import uuid
from datetime import datetime
from typing import Any

from pydantic import ValidationError

from mock_portal.app.errors import QueryError, WriteError
from mock_portal.app.models import Api, ApiStatus, LogRecord, LogRecordInput, Route

logger = logging.getLogger(__name__)

_LOG_COLUMNS = "id, created_at, api_id, route_id, method, path, status_code, latency_ms"
_ROUTE_COLUMNS = "id, api_id, method, path, enabled, status_code, mock_response_json"
_API_COLUMNS = "id, name, version, description, status, created_at"


class PostgresPortalStorage:
    """Thread-safe PostgreSQL-backed route repository and log store."""

    def __init__(self, database_url: str, *, timeout_s: float = 5.0) -> None:
        if not database_url:
            raise ValueError("database_url is required")
        self.database_url = database_url
        self.timeout_s = timeout_s
        # Lock guards DB operations done through this storage instance.
        self._lock = threading.Lock()
        # Lazy import helper keeps error message clear if psycopg is missing.
        self._psycopg, self._dict_row, self._json_wrapper = self._load_psycopg()

    def migrate(self) -> None:
        """Create required tables and indexes if they do not already exist."""
        with self._lock, self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS apis (
                    id UUID PRIMARY KEY,
                    name TEXT NOT NULL,
                    version TEXT NOT NULL,
                    description TEXT,
                    status TEXT NOT NULL DEFAULT 'draft',
                    created_at TIMESTAMPTZ NOT NULL DEFAULT now()
                )
                """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_apis_status_created_at
                ON apis(status, created_at DESC)
                """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS api_routes (
                    id UUID PRIMARY KEY,
                    api_id UUID NOT NULL REFERENCES apis(id) ON DELETE CASCADE,
                    method TEXT NOT NULL,
                    path TEXT NOT NULL,
                    enabled BOOLEAN NOT NULL DEFAULT true,
                    status_code INTEGER,
                    mock_response_json JSONB
                )
                """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_api_routes_api_id
                ON api_routes(api_id, method, path)
                """)
            # seq only breaks created_at ties by insertion order.
            conn.execute("""
                CREATE TABLE IF NOT EXISTS api_logs (
                    id UUID PRIMARY KEY,
                    seq BIGSERIAL NOT NULL,
                    created_at TIMESTAMPTZ NOT NULL DEFAULT clock_timestamp(),
                    api_id UUID NOT NULL REFERENCES apis(id),
                    route_id UUID NOT NULL REFERENCES api_routes(id),
                    method TEXT NOT NULL,
                    path TEXT NOT NULL,
                    status_code INTEGER NOT NULL,
                    latency_ms INTEGER NOT NULL CHECK (latency_ms >= 0)
                )
                """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_api_logs_api_id_created_at
                ON api_logs(api_id, created_at DESC, seq DESC)
                """)
            conn.commit()
        logger.info("storage event=migrated backend=postgres")

    def insert_api(
        self,
        *,
        name: str,
        version: str,
        description: str | None = None,
        status: ApiStatus = "published",
    ) -> Api:
        """Insert an api row. Used by seed scripts; the core never writes apis."""
        try:
            with self._lock, self._connect() as conn:
                row = conn.execute(
                    f"""
                    INSERT INTO apis (id, name, version, description, status)
                    VALUES (%s, %s, %s, %s, %s)
                    RETURNING {_API_COLUMNS}
                    """,
                    (uuid.uuid4(), name, version, description, status),
                ).fetchone()
                conn.commit()
        except self._psycopg.Error as exc:
            raise WriteError(f"Failed to insert api: {exc}") from exc
        return self._row_to_api(row)

    def insert_route(
        self,
        *,
        api_id: str,
        method: str,
        path: str,
        enabled: bool = True,
        status_code: int | None = None,
        mock_response_json: Any = None,
    ) -> Route:
        """Insert a route row. Used by seed scripts; the core never writes routes."""
        body = self._json_wrapper(mock_response_json) if mock_response_json is not None else None
        try:
            with self._lock, self._connect() as conn:
                row = conn.execute(
                    f"""
                    INSERT INTO api_routes (
                        id, api_id, method, path, enabled, status_code, mock_response_json
                    ) VALUES (%s, %s, %s, %s, %s, %s, %s)
                    RETURNING {_ROUTE_COLUMNS}
                    """,
                    (uuid.uuid4(), api_id, method.upper(), path, enabled, status_code, body),
                ).fetchone()
                conn.commit()
        except self._psycopg.Error as exc:
            raise WriteError(f"Failed to insert route: {exc}") from exc
        return self._row_to_route(row)

    def get_api(self, api_id: str) -> Api | None:
        row = self._fetch_one(
            f"SELECT {_API_COLUMNS} FROM apis WHERE id = %s::uuid",
            (api_id,),
        )
        if row is None:
            return None
        try:
            return self._row_to_api(row)
        except ValidationError as exc:
            raise QueryError(
                f"Malformed api row api_id={api_id}: {exc.error_count()} invalid field(s)"
            ) from exc

    def list_published_apis(self) -> list[Api]:
        rows = self._fetch_all(
            f"""
            SELECT {_API_COLUMNS}
            FROM apis
            WHERE status = 'published'
            ORDER BY created_at DESC
            """,
            (),
        )
        apis: list[Api] = []
        for row in rows:
            try:
                apis.append(self._row_to_api(row))
            except ValidationError as exc:
                # One broken catalogue row must not hide the others.
                logger.warning(
                    "storage event=skip_invalid_api api_id=%s errors=%s",
                    row.get("id"),
                    exc.error_count(),
                )
        return apis

    def get_route(self, route_id: str) -> Route | None:
        row = self._fetch_one(
            f"SELECT {_ROUTE_COLUMNS} FROM api_routes WHERE id = %s::uuid",
            (route_id,),
        )
        if row is None:
            return None
        try:
            return self._row_to_route(row)
        except ValidationError as exc:
            raise QueryError(
                f"Malformed route row route_id={route_id}: {exc.error_count()} invalid field(s)"
            ) from exc

    def list_routes(self, api_id: str) -> list[Route]:
        rows = self._fetch_all(
            f"""
            SELECT {_ROUTE_COLUMNS}
            FROM api_routes
            WHERE api_id = %s::uuid
            ORDER BY method COLLATE "C" ASC, path COLLATE "C" ASC
            """,
            (api_id,),
        )
        return [self._row_to_route(row) for row in rows]

    def append_log(self, record: LogRecordInput) -> LogRecord:
        """Insert one log row atomically; id and created_at are assigned here."""
        try:
            with self._lock, self._connect() as conn:
                row = conn.execute(
                    f"""
                    INSERT INTO api_logs (
                        id, api_id, route_id, method, path, status_code, latency_ms
                    ) VALUES (%s, %s, %s, %s, %s, %s, %s)
                    RETURNING {_LOG_COLUMNS}
                    """,
                    (
                        uuid.uuid4(),
                        record.api_id,
                        record.route_id,
                        record.method,
                        record.path,
                        record.status_code,
                        record.latency_ms,
                    ),
                ).fetchone()
                conn.commit()
        except self._psycopg.Error as exc:
            raise WriteError(str(exc)) from exc
        if row is None:
            raise WriteError("Insert returned no row")
        return self._row_to_log_record(row)

    def recent_logs(self, api_id: str, limit: int) -> list[LogRecord]:
        if limit < 1:
            raise QueryError(f"limit must be >= 1, got {limit}")
        rows = self._fetch_all(
            f"""
            SELECT {_LOG_COLUMNS}
            FROM api_logs
            WHERE api_id = %s::uuid
            ORDER BY created_at DESC, seq DESC
            LIMIT %s
            """,
            (api_id, limit),
        )
        return [self._row_to_log_record(row) for row in rows]

    def _fetch_one(self, query: str, params: tuple[Any, ...]) -> Any:
        try:
            with self._lock, self._connect() as conn:
                return conn.execute(query, params).fetchone()
        except self._psycopg.Error as exc:
            raise QueryError(str(exc)) from exc

    def _fetch_all(self, query: str, params: tuple[Any, ...]) -> list[Any]:
        try:
            with self._lock, self._connect() as conn:
                return conn.execute(query, params).fetchall()
        except self._psycopg.Error as exc:
            raise QueryError(str(exc)) from exc

    def _connect(self) -> Any:
        """Open a psycopg connection with bounded connect and statement timeouts."""
        statement_timeout_ms = int(self.timeout_s * 1000)
        return self._psycopg.connect(
            self.database_url,
            row_factory=self._dict_row,
            connect_timeout=max(1, int(self.timeout_s)),
            options=f"-c statement_timeout={statement_timeout_ms}",
        )

    @staticmethod
    def _load_psycopg() -> tuple[Any, Any, Any]:
        """Import psycopg and helpers with a friendly install hint on failure."""
        try:
            import psycopg
            from psycopg.rows import dict_row
            from psycopg.types.json import Json
        except ImportError as exc:  # pragma: no cover - exercised only without dependency
            raise RuntimeError(
                "PostgreSQL backend requires psycopg. Install with: "
                'python -m pip install "psycopg[binary]>=3.2,<4.0"'
            ) from exc
        return psycopg, dict_row, Json

    @staticmethod
    def _parse_datetime(raw: Any) -> datetime:
        """Parse datetime value from database driver output."""
        if isinstance(raw, datetime):
            return raw
        if isinstance(raw, str):
            return datetime.fromisoformat(raw)
        raise TypeError(f"Unsupported datetime value: {type(raw)!r}")

    @classmethod
    def _row_to_api(cls, row: Any) -> Api:
        created_raw = row.get("created_at")
        return Api(
            id=str(row["id"]) if row["id"] is not None else "",
            name=row["name"] or "",
            version=row["version"] or "",
            description=row.get("description"),
            status=row.get("status") or "draft",
            created_at=cls._parse_datetime(created_raw) if created_raw is not None else None,
        )

    @classmethod
    def _row_to_route(cls, row: Any) -> Route:
        return Route(
            id=str(row["id"]),
            api_id=str(row["api_id"]),
            method=row["method"],
            path=row["path"],
            enabled=bool(row["enabled"]),
            status_code=row["status_code"],
            mock_response_json=row["mock_response_json"],
        )

    @classmethod
    def _row_to_log_record(cls, row: Any) -> LogRecord:
        return LogRecord(
            id=str(row["id"]),
            created_at=cls._parse_datetime(row["created_at"]),
            api_id=str(row["api_id"]),
            route_id=str(row["route_id"]),
            method=row["method"],
            path=row["path"],
            status_code=row["status_code"],
            latency_ms=row["latency_ms"],
        )
