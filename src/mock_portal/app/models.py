"""Pydantic models shared across the portal API, simulator, monitor, and storage.

Beginner terms used in this file:
- Model: a typed schema class used for validation/serialization.
- Literal: restricts a field to a fixed set of allowed string values.
- Denormalized field: a value copied from another record at write time so it
  stays accurate even if the source record changes later.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

# Known publication states of an Api. Only "published" apis are listed to users;
# other values written by the management process are carried through as-is.
ApiStatus = Literal["draft", "published", "archived"]

# Display states of a monitor view. Exactly one applies at a time.
MonitorState = Literal["loading", "error", "empty", "ready"]


class Api(BaseModel):
    """A mock API owned by the (external) management process."""

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    version: str = Field(min_length=1)
    description: str | None = None
    status: str = "draft"
    created_at: datetime | None = None


class Route(BaseModel):
    """One simulated endpoint of an Api."""

    id: str
    api_id: str
    method: str
    path: str
    enabled: bool = True
    # None means "use the default" (200) at simulation time.
    status_code: int | None = None
    # Arbitrary JSON value returned by the simulated call.
    mock_response_json: Any = None


class RouteRef(BaseModel):
    """Route identity echoed back to the caller of an invocation."""

    id: str
    method: str
    path: str


class LogRecordInput(BaseModel):
    """Fields supplied by the caller when appending a log record."""

    model_config = ConfigDict(frozen=True)

    api_id: str
    route_id: str
    # Copied from the route at invocation time, never re-resolved.
    method: str
    path: str
    status_code: int
    latency_ms: int = Field(ge=0)


class LogRecord(LogRecordInput):
    """Persisted, immutable record of one invocation."""

    id: str
    created_at: datetime


class InvocationOutcome(BaseModel):
    """Synthetic response produced by the simulator."""

    status_code: int
    latency_ms: int = Field(ge=0)
    body: Any


class InvocationResult(BaseModel):
    """Everything the invocation service hands back after a successful call."""

    route: RouteRef
    outcome: InvocationOutcome
    log: LogRecord


class InvokeResponse(BaseModel):
    """Response body for POST /api/try/{route_id}."""

    ok: bool = True
    route: RouteRef
    latency_ms: int
    status_code: int
    response: Any


class Metrics(BaseModel):
    """KPIs over a window of log records. None means "no data", never zero."""

    avg_latency_ms: int | None = None
    error_rate_pct: int | None = None
    sample_count: int = 0


class ApiListResponse(BaseModel):
    """Response body for GET /apis."""

    apis: list[Api] = Field(default_factory=list)


class RouteListResponse(BaseModel):
    """Response body for GET /apis/{api_id}/routes."""

    api_id: str
    routes: list[Route] = Field(default_factory=list)


class RecentLogsResponse(BaseModel):
    """Response body for GET /apis/{api_id}/logs."""

    api_id: str
    limit: int
    logs: list[LogRecord] = Field(default_factory=list)
    metrics: Metrics


class MonitorSnapshot(BaseModel):
    """What a monitor view renders after its latest refresh."""

    api_id: str
    state: MonitorState = "loading"
    records: list[LogRecord] = Field(default_factory=list)
    metrics: Metrics = Field(default_factory=Metrics)
    error: str | None = None
    refreshed_at: datetime | None = None
