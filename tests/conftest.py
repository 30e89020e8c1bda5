from __future__ import annotations

import random
from dataclasses import dataclass

import pytest
from fastapi.testclient import TestClient

from mock_portal.app.models import Api, Route
from mock_portal.app.simulator import InvocationSimulator
from mock_portal.config.settings import Settings
from mock_portal.main import create_app
from mock_portal.storage.memory import InMemoryPortalStorage


class ForbiddenStorage:
    """Storage stub that fails the test if any method is reached."""

    def __getattr__(self, name: str):
        def _forbidden(*_args, **_kwargs):
            raise AssertionError(f"storage.{name} must not be called")

        return _forbidden


@dataclass
class SeededPortal:
    storage: InMemoryPortalStorage
    api: Api
    draft_api: Api
    get_users: Route
    create_user: Route
    disabled: Route
    failing: Route


@pytest.fixture
def seeded() -> SeededPortal:
    storage = InMemoryPortalStorage()
    api = storage.add_api(name="Users", version="1.0.0", description="User directory")
    draft_api = storage.add_api(name="Billing", version="0.1.0", status="draft")
    get_users = storage.add_route(
        api_id=api.id,
        method="GET",
        path="/users",
        mock_response_json=[{"id": 1, "name": "Ada"}],
    )
    create_user = storage.add_route(
        api_id=api.id,
        method="POST",
        path="/users",
        status_code=201,
    )
    disabled = storage.add_route(
        api_id=api.id,
        method="DELETE",
        path="/users/{id}",
        enabled=False,
    )
    failing = storage.add_route(
        api_id=api.id,
        method="GET",
        path="/users/broken",
        status_code=503,
        mock_response_json={"error": "upstream unavailable"},
    )
    return SeededPortal(
        storage=storage,
        api=api,
        draft_api=draft_api,
        get_users=get_users,
        create_user=create_user,
        disabled=disabled,
        failing=failing,
    )


@pytest.fixture
def simulator() -> InvocationSimulator:
    return InvocationSimulator(rng=random.Random(1234))


@pytest.fixture
def client(seeded: SeededPortal, simulator: InvocationSimulator) -> TestClient:
    app = create_app(
        storage=seeded.storage,
        settings_override=Settings(database_url=""),
        simulator=simulator,
    )
    with TestClient(app) as test_client:
        yield test_client
