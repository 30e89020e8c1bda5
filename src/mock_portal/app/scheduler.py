"""Fixed-interval refresh timer with an explicit start/stop handle."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable

logger = logging.getLogger(__name__)

# Upper bound on how long stop() waits for an in-flight tick to finish.
_JOIN_TIMEOUT_S = 5.0


class RefreshHandle:
    """One running refresh loop. Returned by RefreshScheduler.start."""

    def __init__(self, interval_ms: int, on_tick: Callable[[], None]) -> None:
        self.interval_ms = interval_ms
        self._on_tick = on_tick
        self._stopped = threading.Event()
        self._thread = threading.Thread(
            target=self._run,
            name=f"refresh-{interval_ms}ms",
            daemon=True,
        )

    @property
    def active(self) -> bool:
        return not self._stopped.is_set()

    def _start(self) -> None:
        self._thread.start()

    def _run(self) -> None:
        interval_s = self.interval_ms / 1000.0
        next_at = time.monotonic()
        while not self._stopped.is_set():
            self._fire()
            # Fixed spacing from the previous slot.
            next_at += interval_s
            now = time.monotonic()
            if next_at < now:
                # A slow tick overran its slot: restart spacing, no catch-up burst.
                next_at = now + interval_s
            delay = max(0.0, next_at - now)
            if self._stopped.wait(delay):
                break

    def _fire(self) -> None:
        if self._stopped.is_set():
            return
        try:
            self._on_tick()
        except Exception:  # noqa: BLE001
            # The next scheduled tick is the retry.
            logger.exception(
                "refresh event=tick_failed interval_ms=%s",
                self.interval_ms,
            )

    def stop(self) -> None:
        """Stop the loop. Idempotent; no tick starts after this returns."""
        self._stopped.set()
        if self._thread.is_alive() and threading.current_thread() is not self._thread:
            self._thread.join(timeout=_JOIN_TIMEOUT_S)


class RefreshScheduler:
    """Starts refresh loops: one tick immediately, then every interval_ms."""

    def start(self, interval_ms: int, on_tick: Callable[[], None]) -> RefreshHandle:
        if interval_ms <= 0:
            raise ValueError(f"interval_ms must be positive, got {interval_ms}")
        handle = RefreshHandle(interval_ms, on_tick)
        handle._start()
        logger.debug("refresh event=started interval_ms=%s", interval_ms)
        return handle

    def stop(self, handle: RefreshHandle | None) -> None:
        if handle is None:
            return
        handle.stop()
        logger.debug("refresh event=stopped interval_ms=%s", handle.interval_ms)
