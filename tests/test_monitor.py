from __future__ import annotations

import threading
import time

import pytest

from mock_portal.app import portal
from mock_portal.app.errors import QueryError
from mock_portal.app.models import LogRecord, LogRecordInput, MonitorSnapshot
from mock_portal.app.monitor import ApiMonitor, load_monitor_snapshot

from conftest import ForbiddenStorage, SeededPortal


class _BrokenLogStore:
    def append_log(self, record: LogRecordInput) -> LogRecord:
        raise AssertionError("monitor must not write")

    def recent_logs(self, api_id: str, limit: int) -> list[LogRecord]:
        raise QueryError("connection refused")


def _log(seeded: SeededPortal, latency_ms: int, status_code: int) -> None:
    seeded.storage.append_log(
        LogRecordInput(
            api_id=seeded.api.id,
            route_id=seeded.get_users.id,
            method="GET",
            path="/users",
            status_code=status_code,
            latency_ms=latency_ms,
        )
    )


def test_new_monitor_starts_loading(seeded: SeededPortal) -> None:
    monitor = ApiMonitor(seeded.api.id, seeded.storage)
    snapshot = monitor.snapshot
    assert snapshot.state == "loading"
    assert snapshot.error is None
    assert snapshot.records == []
    assert snapshot.metrics.sample_count == 0


def test_empty_error_and_ready_are_distinct(seeded: SeededPortal) -> None:
    empty = load_monitor_snapshot(seeded.api.id, seeded.storage)
    assert empty.state == "empty"
    assert empty.error is None
    assert empty.metrics.avg_latency_ms is None

    failed = load_monitor_snapshot(seeded.api.id, _BrokenLogStore())
    assert failed.state == "error"
    assert failed.error == "connection refused"
    assert failed.records == []

    _log(seeded, 100, 200)
    _log(seeded, 200, 500)
    ready = load_monitor_snapshot(seeded.api.id, seeded.storage)
    assert ready.state == "ready"
    assert ready.error is None
    assert ready.metrics.avg_latency_ms == 150
    assert ready.metrics.error_rate_pct == 50
    assert ready.metrics.sample_count == 2


def test_invalid_api_id_is_error_state_without_storage_access() -> None:
    for raw in ("", "undefined", "abc"):
        snapshot = load_monitor_snapshot(raw, ForbiddenStorage())
        assert snapshot.state == "error"
        assert snapshot.error.startswith("Invalid API id")


def test_window_respects_limit(seeded: SeededPortal) -> None:
    for latency in range(40, 60):
        _log(seeded, latency, 200)
    snapshot = load_monitor_snapshot(seeded.api.id, seeded.storage, limit=3)
    assert [record.latency_ms for record in snapshot.records] == [59, 58, 57]
    assert snapshot.metrics.avg_latency_ms == 58


def test_refresh_now_updates_snapshot_and_notifies(seeded: SeededPortal) -> None:
    updates: list[MonitorSnapshot] = []
    monitor = ApiMonitor(seeded.api.id, seeded.storage, on_update=updates.append)
    _log(seeded, 120, 404)

    snapshot = monitor.refresh()
    assert snapshot.state == "ready"
    assert monitor.snapshot is snapshot
    assert updates == [snapshot]
    assert snapshot.metrics.error_rate_pct == 100


def test_auto_refresh_picks_up_new_records_and_stops(seeded: SeededPortal) -> None:
    seen = threading.Event()

    def on_update(snapshot: MonitorSnapshot) -> None:
        if snapshot.metrics.sample_count >= 2:
            seen.set()

    monitor = ApiMonitor(seeded.api.id, seeded.storage, interval_ms=10, on_update=on_update)
    monitor.start()
    try:
        assert monitor.auto_refresh is True
        _log(seeded, 80, 200)
        _log(seeded, 90, 200)
        assert seen.wait(2.0)
    finally:
        monitor.stop()
    assert monitor.auto_refresh is False

    frozen = monitor.snapshot
    _log(seeded, 300, 500)
    time.sleep(0.05)
    assert monitor.snapshot is frozen


def test_restart_replaces_previous_timer(seeded: SeededPortal) -> None:
    monitor = ApiMonitor(seeded.api.id, seeded.storage, interval_ms=10)
    first = monitor.start()
    second = monitor.start()
    try:
        assert first.active is False
        assert second.active is True
    finally:
        monitor.set_auto_refresh(False)
    assert second.active is False


def test_non_positive_limit_is_error_state(seeded: SeededPortal) -> None:
    monitor = ApiMonitor(seeded.api.id, seeded.storage, limit=0)
    snapshot = monitor.refresh()
    assert snapshot.state == "error"
    assert snapshot.error == "limit must be >= 1, got 0"


def test_fetch_recent_logs_rejects_zero_limit(seeded: SeededPortal) -> None:
    with pytest.raises(QueryError, match="limit must be >= 1"):
        portal.fetch_recent_logs(seeded.api.id, seeded.storage, 0)
