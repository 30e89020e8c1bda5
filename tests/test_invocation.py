from __future__ import annotations

import pytest

from mock_portal.app.errors import (
    InvalidIdError,
    NotFoundError,
    RouteDisabledError,
    WriteError,
)
from mock_portal.app.invocation import invoke_route
from mock_portal.app.models import LogRecord, LogRecordInput
from mock_portal.app.simulator import InvocationSimulator
from mock_portal.storage.memory import InMemoryPortalStorage

from conftest import ForbiddenStorage, SeededPortal

UNKNOWN_ID = "0e1d5e3a-5b7c-4d2e-8f90-123456789abc"


@pytest.mark.parametrize(
    "raw_id",
    ["", "undefined", "   ", "1234", "zzzzzzzz-zzzz-4zzz-8zzz-zzzzzzzzzzzz"],
)
def test_invalid_id_fails_before_storage_access(
    raw_id: str, simulator: InvocationSimulator
) -> None:
    stub = ForbiddenStorage()
    with pytest.raises(InvalidIdError):
        invoke_route(raw_id, routes=stub, logs=stub, simulator=simulator)


def test_unknown_route_raises_not_found(
    seeded: SeededPortal, simulator: InvocationSimulator
) -> None:
    with pytest.raises(NotFoundError):
        invoke_route(
            UNKNOWN_ID, routes=seeded.storage, logs=seeded.storage, simulator=simulator
        )
    assert seeded.storage.log_count() == 0


def test_disabled_route_never_logs(seeded: SeededPortal, simulator: InvocationSimulator) -> None:
    for _ in range(5):
        with pytest.raises(RouteDisabledError):
            invoke_route(
                seeded.disabled.id,
                routes=seeded.storage,
                logs=seeded.storage,
                simulator=simulator,
            )
    assert seeded.storage.log_count() == 0


def test_status_201_route_without_body_appends_one_matching_record(
    seeded: SeededPortal, simulator: InvocationSimulator
) -> None:
    result = invoke_route(
        seeded.create_user.id,
        routes=seeded.storage,
        logs=seeded.storage,
        simulator=simulator,
    )

    assert result.outcome.status_code == 201
    assert result.outcome.body == {"message": "ok"}
    assert 40 <= result.outcome.latency_ms <= 260
    assert result.route.id == seeded.create_user.id
    assert result.route.method == "POST"
    assert result.route.path == "/users"

    records = seeded.storage.recent_logs(seeded.api.id, 10)
    assert len(records) == 1
    record = records[0]
    assert record.id == result.log.id
    assert record.api_id == seeded.api.id
    assert record.route_id == seeded.create_user.id
    assert record.method == "POST"
    assert record.path == "/users"
    assert record.status_code == 201
    assert record.latency_ms == result.outcome.latency_ms


def test_default_status_is_frozen_into_the_log(
    seeded: SeededPortal, simulator: InvocationSimulator
) -> None:
    result = invoke_route(
        seeded.get_users.id,
        routes=seeded.storage,
        logs=seeded.storage,
        simulator=simulator,
    )
    assert result.outcome.status_code == 200
    assert result.log.status_code == 200
    assert result.outcome.body == [{"id": 1, "name": "Ada"}]


def test_uppercase_route_id_resolves(seeded: SeededPortal, simulator: InvocationSimulator) -> None:
    result = invoke_route(
        seeded.get_users.id.upper(),
        routes=seeded.storage,
        logs=seeded.storage,
        simulator=simulator,
    )
    assert result.route.id == seeded.get_users.id


class _FailingLogStore:
    def append_log(self, record: LogRecordInput) -> LogRecord:
        raise WriteError("disk full")

    def recent_logs(self, api_id: str, limit: int) -> list[LogRecord]:
        return []


def test_log_write_failure_propagates(seeded: SeededPortal, simulator: InvocationSimulator) -> None:
    with pytest.raises(WriteError, match="disk full"):
        invoke_route(
            seeded.get_users.id,
            routes=seeded.storage,
            logs=_FailingLogStore(),
            simulator=simulator,
        )


def test_log_keeps_path_after_route_edit(simulator: InvocationSimulator) -> None:
    storage = InMemoryPortalStorage()
    api = storage.add_api(name="Orders", version="2.0")
    route = storage.add_route(api_id=api.id, method="get", path="/orders")
    invoke_route(route.id, routes=storage, logs=storage, simulator=simulator)

    # Re-register the same route id with a new path and status.
    storage.add_route(
        api_id=api.id, method="GET", path="/v2/orders", status_code=500, route_id=route.id
    )
    invoke_route(route.id, routes=storage, logs=storage, simulator=simulator)

    newest, oldest = storage.recent_logs(api.id, 10)
    assert oldest.path == "/orders"
    assert oldest.status_code == 200
    assert newest.path == "/v2/orders"
    assert newest.status_code == 500
