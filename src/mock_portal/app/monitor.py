"""Monitor read path: poll recent log records and derive KPIs.

A monitor view is always in exactly one of four states:
- loading: nothing fetched yet
- error: the last fetch failed (message in `error`)
- empty: the last fetch succeeded with zero records
- ready: the last fetch returned records
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from datetime import UTC, datetime

from mock_portal.config.settings import DEFAULT_RECENT_LIMIT, DEFAULT_REFRESH_INTERVAL_MS
from mock_portal.storage.base import LogStore

from .errors import InvalidIdError, QueryError
from .metrics import aggregate
from .models import MonitorSnapshot
from .portal import fetch_recent_logs
from .scheduler import RefreshHandle, RefreshScheduler

logger = logging.getLogger(__name__)


def load_monitor_snapshot(
    raw_api_id: object,
    logs: LogStore,
    limit: int = DEFAULT_RECENT_LIMIT,
) -> MonitorSnapshot:
    """Fetch one window and turn it into a displayable snapshot."""
    api_id = raw_api_id if isinstance(raw_api_id, str) else ""
    now = datetime.now(UTC)
    try:
        records = fetch_recent_logs(raw_api_id, logs, limit)
    except InvalidIdError as exc:
        return MonitorSnapshot(
            api_id=api_id,
            state="error",
            error=f"Invalid API id: {exc}",
            refreshed_at=now,
        )
    except QueryError as exc:
        logger.warning("monitor event=query_failed api_id=%s error=%s", api_id, exc)
        return MonitorSnapshot(api_id=api_id, state="error", error=str(exc), refreshed_at=now)

    return MonitorSnapshot(
        api_id=api_id,
        state="ready" if records else "empty",
        records=records,
        metrics=aggregate(records),
        refreshed_at=now,
    )


class ApiMonitor:
    """Auto-refreshing monitor for one api. Owns at most one refresh handle."""

    def __init__(
        self,
        api_id: str,
        logs: LogStore,
        *,
        limit: int = DEFAULT_RECENT_LIMIT,
        interval_ms: int = DEFAULT_REFRESH_INTERVAL_MS,
        scheduler: RefreshScheduler | None = None,
        on_update: Callable[[MonitorSnapshot], None] | None = None,
    ) -> None:
        self.api_id = api_id
        self.limit = limit
        self.interval_ms = interval_ms
        self._logs = logs
        self._scheduler = scheduler or RefreshScheduler()
        self._on_update = on_update
        self._lock = threading.Lock()
        self._handle: RefreshHandle | None = None
        self._snapshot = MonitorSnapshot(api_id=api_id, state="loading")

    @property
    def snapshot(self) -> MonitorSnapshot:
        with self._lock:
            return self._snapshot

    @property
    def auto_refresh(self) -> bool:
        handle = self._handle
        return handle is not None and handle.active

    def refresh(self) -> MonitorSnapshot:
        """Fetch the window now, independent of the auto-refresh timer."""
        snapshot = load_monitor_snapshot(self.api_id, self._logs, self.limit)
        with self._lock:
            self._snapshot = snapshot
        if self._on_update is not None:
            self._on_update(snapshot)
        return snapshot

    def start(self) -> RefreshHandle:
        # Restarting replaces the old timer instead of stacking a second one.
        self.stop()
        handle = self._scheduler.start(self.interval_ms, self.refresh)
        self._handle = handle
        logger.info(
            "monitor event=auto_refresh_on api_id=%s interval_ms=%s limit=%s",
            self.api_id,
            self.interval_ms,
            self.limit,
        )
        return handle

    def stop(self) -> None:
        handle, self._handle = self._handle, None
        if handle is not None:
            self._scheduler.stop(handle)
            logger.info("monitor event=auto_refresh_off api_id=%s", self.api_id)

    def set_auto_refresh(self, enabled: bool) -> None:
        if enabled:
            self.start()
        else:
            self.stop()
