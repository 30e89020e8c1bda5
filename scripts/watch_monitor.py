from __future__ import annotations

import argparse
import time

from mock_portal.app.models import MonitorSnapshot
from mock_portal.app.monitor import ApiMonitor
from mock_portal.config.settings import MAX_RECENT_LIMIT, get_settings
from mock_portal.storage.postgres import PostgresPortalStorage


def _parse_args() -> argparse.Namespace:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Poll recent calls for one API and print KPIs.")
    parser.add_argument("--api-id", required=True, help="API UUID to monitor.")
    parser.add_argument("--database-url", default=None, help="PostgreSQL URL override.")
    parser.add_argument(
        "--limit",
        type=int,
        default=settings.recent_logs_limit,
        help=f"Window size (1..{MAX_RECENT_LIMIT}).",
    )
    parser.add_argument(
        "--interval-ms",
        type=int,
        default=settings.refresh_interval_ms,
        help="Refresh interval in milliseconds.",
    )
    parser.add_argument("--once", action="store_true", help="Refresh once and exit.")
    return parser.parse_args()


def _format(snapshot: MonitorSnapshot) -> str:
    if snapshot.state == "error":
        return f"[error] {snapshot.error}"
    if snapshot.state == "empty":
        return "[empty] No logs yet. Invoke a route to generate calls."
    if snapshot.state == "loading":
        return "[loading]"
    metrics = snapshot.metrics
    newest = snapshot.records[0]
    return (
        f"[ready] samples={metrics.sample_count} avg_latency={metrics.avg_latency_ms}ms "
        f"errors={metrics.error_rate_pct}% last={newest.method} {newest.path} "
        f"-> {newest.status_code} ({newest.latency_ms}ms)"
    )


def main() -> None:
    args = _parse_args()
    if not 1 <= args.limit <= MAX_RECENT_LIMIT:
        raise SystemExit(f"--limit must be between 1 and {MAX_RECENT_LIMIT}")

    settings = get_settings()
    database_url = args.database_url or settings.resolved_database_url()
    if not database_url:
        raise SystemExit("Missing database URL. Pass --database-url or set MOCK_PORTAL_DATABASE_URL.")
    storage = PostgresPortalStorage(database_url, timeout_s=settings.storage_timeout_s)

    monitor = ApiMonitor(
        args.api_id,
        storage,
        limit=args.limit,
        interval_ms=args.interval_ms,
        on_update=lambda snapshot: print(_format(snapshot), flush=True),
    )
    if args.once:
        monitor.refresh()
        return

    monitor.start()
    try:
        while True:
            time.sleep(1.0)
    except KeyboardInterrupt:
        pass
    finally:
        monitor.stop()


if __name__ == "__main__":
    main()
