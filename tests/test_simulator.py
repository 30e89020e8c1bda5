from __future__ import annotations

import random

import pytest

from mock_portal.app.models import Route
from mock_portal.app.simulator import InvocationSimulator


def _route(**overrides: object) -> Route:
    fields: dict[str, object] = {
        "id": "3f2504e0-4f89-41d3-9a0c-0305e82c3301",
        "api_id": "6ba7b810-9dad-11d1-80b4-00c04fd430c8",
        "method": "GET",
        "path": "/items",
    }
    fields.update(overrides)
    return Route(**fields)


def test_latency_always_within_closed_range() -> None:
    simulator = InvocationSimulator(rng=random.Random(7))
    samples = [simulator.simulate(_route()).latency_ms for _ in range(10_000)]
    assert all(isinstance(value, int) for value in samples)
    assert all(40 <= value <= 260 for value in samples)
    # Both ends of the closed interval are reachable.
    assert min(samples) == 40
    assert max(samples) == 260


def test_missing_status_code_defaults_to_200_and_body_to_ok() -> None:
    outcome = InvocationSimulator(rng=random.Random(0)).simulate(_route())
    assert outcome.status_code == 200
    assert outcome.body == {"message": "ok"}


def test_explicit_status_and_body_are_echoed_exactly() -> None:
    body = {"items": [1, 2, 3]}
    outcome = InvocationSimulator(rng=random.Random(0)).simulate(
        _route(status_code=418, mock_response_json=body)
    )
    assert outcome.status_code == 418
    assert outcome.body == body


def test_falsy_mock_body_is_kept() -> None:
    outcome = InvocationSimulator(rng=random.Random(0)).simulate(_route(mock_response_json=[]))
    assert outcome.body == []


def test_same_seed_gives_same_latency_sequence() -> None:
    first = InvocationSimulator(rng=random.Random(99))
    second = InvocationSimulator(rng=random.Random(99))
    assert [first.draw_latency_ms() for _ in range(20)] == [
        second.draw_latency_ms() for _ in range(20)
    ]


def test_invalid_latency_range_is_rejected() -> None:
    with pytest.raises(ValueError, match="Invalid latency range"):
        InvocationSimulator(latency_min_ms=300, latency_max_ms=100)
