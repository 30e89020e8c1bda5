"""Route invocation: validate -> resolve -> enabled check -> simulate -> log.

Every step is sequential and any failure short-circuits the rest. The log
append is on the critical path: an invocation only counts as successful once
its record is persisted, so the monitor never misses a call that a caller saw.
"""

from __future__ import annotations

import logging

from mock_portal.storage.base import LogStore, RouteRepository

from .errors import NotFoundError, RouteDisabledError, WriteError
from .identifiers import validate_id
from .models import InvocationResult, LogRecordInput, RouteRef
from .simulator import InvocationSimulator

logger = logging.getLogger(__name__)


def invoke_route(
    raw_route_id: object,
    *,
    routes: RouteRepository,
    logs: LogStore,
    simulator: InvocationSimulator,
) -> InvocationResult:
    # 1) Reject malformed ids before touching storage.
    route_id = validate_id(raw_route_id)

    # 2) Resolve the route definition.
    route = routes.get_route(route_id)
    if route is None:
        logger.warning("route_invoke event=not_found route_id=%s", route_id)
        raise NotFoundError("Route", route_id)

    # 3) Disabled routes never reach the simulator.
    if not route.enabled:
        logger.warning(
            "route_invoke event=disabled route_id=%s api_id=%s", route.id, route.api_id
        )
        raise RouteDisabledError(route.id)

    # 4) Simulate the call.
    outcome = simulator.simulate(route)

    # 5) Persist the log record; method/path/status are frozen here.
    try:
        record = logs.append_log(
            LogRecordInput(
                api_id=route.api_id,
                route_id=route.id,
                method=route.method,
                path=route.path,
                status_code=outcome.status_code,
                latency_ms=outcome.latency_ms,
            )
        )
    except WriteError:
        logger.error(
            "route_invoke event=log_write_failed route_id=%s api_id=%s",
            route.id,
            route.api_id,
        )
        raise

    logger.info(
        "route_invoke event=completed route_id=%s api_id=%s method=%s path=%s "
        "status_code=%s latency_ms=%s log_id=%s",
        route.id,
        route.api_id,
        route.method,
        route.path,
        outcome.status_code,
        outcome.latency_ms,
        record.id,
    )
    return InvocationResult(
        route=RouteRef(id=route.id, method=route.method, path=route.path),
        outcome=outcome,
        log=record,
    )
