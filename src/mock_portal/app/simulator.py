"""Turns a route definition into a synthetic response.

The only source of nondeterminism is the latency draw, which comes from an
injectable `random.Random` so tests can pin it down.
"""

from __future__ import annotations

import random
from typing import Any

from mock_portal.config.settings import DEFAULT_LATENCY_MAX_MS, DEFAULT_LATENCY_MIN_MS
from .models import InvocationOutcome, Route

DEFAULT_STATUS_CODE = 200


def default_body() -> dict[str, Any]:
    return {"message": "ok"}


class InvocationSimulator:
    """Produce status code, latency, and body for an enabled route."""

    def __init__(
        self,
        *,
        latency_min_ms: int = DEFAULT_LATENCY_MIN_MS,
        latency_max_ms: int = DEFAULT_LATENCY_MAX_MS,
        rng: random.Random | None = None,
    ) -> None:
        if latency_min_ms < 0 or latency_min_ms > latency_max_ms:
            raise ValueError(
                f"Invalid latency range [{latency_min_ms}, {latency_max_ms}]"
            )
        self.latency_min_ms = latency_min_ms
        self.latency_max_ms = latency_max_ms
        self._rng = rng or random.Random()

    def draw_latency_ms(self) -> int:
        # randint is inclusive on both ends.
        return self._rng.randint(self.latency_min_ms, self.latency_max_ms)

    def simulate(self, route: Route) -> InvocationOutcome:
        # The enabled check belongs to the caller; see invocation.invoke_route.
        status_code = (
            route.status_code if route.status_code is not None else DEFAULT_STATUS_CODE
        )
        body = (
            route.mock_response_json
            if route.mock_response_json is not None
            else default_body()
        )
        return InvocationOutcome(
            status_code=status_code,
            latency_ms=self.draw_latency_ms(),
            body=body,
        )
