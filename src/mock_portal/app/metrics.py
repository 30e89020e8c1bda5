from __future__ import annotations

from collections.abc import Sequence
from decimal import ROUND_HALF_UP, Decimal

from .models import LogRecord, Metrics

ERROR_STATUS_THRESHOLD = 400


def round_half_up(numerator: int, denominator: int) -> int:
    """Round numerator/denominator to the nearest integer, halves away from zero."""
    if denominator == 0:
        raise ZeroDivisionError("denominator must be non-zero")
    quotient = Decimal(numerator) / Decimal(denominator)
    return int(quotient.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def aggregate(records: Sequence[LogRecord]) -> Metrics:
    """Compute KPIs over an explicit window of records.

    An empty window yields no KPIs at all, so "no samples" is never shown as
    "0 ms" or "0% errors".
    """
    sample_count = len(records)
    if sample_count == 0:
        return Metrics(avg_latency_ms=None, error_rate_pct=None, sample_count=0)

    total_latency = sum(record.latency_ms for record in records)
    errors = sum(1 for record in records if record.status_code >= ERROR_STATUS_THRESHOLD)
    return Metrics(
        avg_latency_ms=round_half_up(total_latency, sample_count),
        error_rate_pct=round_half_up(100 * errors, sample_count),
        sample_count=sample_count,
    )
