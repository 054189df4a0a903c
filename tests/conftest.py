"""Shared fixtures: an application over throwaway file storage."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Tuple

import pytest
from fastapi.testclient import TestClient

from laundry.config import Settings
from laundry.main import create_app
from laundry.realtime import Notifier

T0 = datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)


class RecordingNotifier(Notifier):
    def __init__(self) -> None:
        self.events: List[Tuple[str, Any]] = []

    async def publish(self, event: str, data: Any) -> None:
        self.events.append((event, data))

    def names(self) -> List[str]:
        return [e for e, _ in self.events]


class SteppingClock:
    """Returns T0, T0+1s, T0+2s, ... on successive calls."""

    def __init__(self, start: datetime = T0, step: timedelta = timedelta(seconds=1)) -> None:
        self.current = start - step
        self.step = step

    def __call__(self) -> datetime:
        self.current = self.current + self.step
        return self.current


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        deployment_mode="server",
        storage_backend="file",
        data_dir=tmp_path,
        jwt_secret="test-secret",
        log_level="WARNING",
    )


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def alice() -> Dict[str, str]:
    return {
        "firstName": "Alice",
        "lastName": "Smith",
        "email": "alice@x.com",
        "phone": "5551234567",
        "password": "longenough1",
    }


@pytest.fixture
def alice_token(client, alice) -> str:
    assert client.post("/api/auth/signup", json=alice).status_code == 201
    resp = client.post("/api/auth/login", json={"email": alice["email"], "password": alice["password"]})
    return resp.json()["token"]


def auth_header(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def sample_order(**overrides: Any) -> Dict[str, Any]:
    order: Dict[str, Any] = {
        "customer": {
            "name": "Alice Smith",
            "phone": "5551234567",
            "address": "1 Main St",
            "email": "alice@x.com",
        },
        "pickup": {"date": "2024-05-02T10:00:00.000Z", "timeSlot": "10:00 AM - 12:00 PM"},
        "services": [{"name": "Wash & Fold", "quantity": 3, "price": 10.0}],
        "totalAmount": 30.0,
    }
    order.update(overrides)
    return order
