"""Shared test fixtures for the vessel store, detectors and API tests."""
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from berthboard.api.state import get_store
from berthboard.database import get_db
from berthboard.main import app
from berthboard.models.base import VesselStatusEnum, VesselTypeEnum
from berthboard.modules.persistence import InMemorySlot
from berthboard.modules.reference_data import load_reference_data
from berthboard.modules.vessel_store import VesselStore
from berthboard.schemas.reference import Berth, Terminal
from berthboard.schemas.vessel import Vessel

# Fixed "now" for everything clock-dependent
NOW = datetime(2025, 6, 1, 0, 0, tzinfo=timezone.utc)


def at(hours: float) -> datetime:
    """NOW + hours."""
    return NOW + timedelta(hours=hours)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def reference():
    """The shipped reference data (config/reference_data.yaml)."""
    return load_reference_data()


@pytest.fixture
def terminals():
    return [
        Terminal(id="T1", name="North Terminal", tenant_id="tenant1"),
        Terminal(id="T2", name="South Terminal", tenant_id="tenant1"),
    ]


@pytest.fixture
def berths():
    """Two berths: B1 (300m, 14m draft), B2 (200m, 10m draft), plus an inactive B3."""
    return [
        Berth(id="B1", name="Berth 1", terminal_id="T1", length_m=300, max_draft=14.0, position=1),
        Berth(id="B2", name="Berth 2", terminal_id="T1", length_m=200, max_draft=10.0, position=2),
        Berth(id="B3", name="Berth 3", terminal_id="T2", length_m=250, max_draft=12.0, is_active=False, position=1),
    ]


@pytest.fixture
def make_draft():
    """Factory for a valid create payload (dict) with overrides."""
    def _make(**overrides):
        draft = {
            "voyage_number": "2025-001-E",
            "vessel_name": "MSC GENEVA",
            "vessel_type": "Container",
            "operator": "MSC",
            "route_info": "Asia-Europe",
            "eta": at(24).isoformat(),
            "etd": at(48).isoformat(),
            "loa": 250,
            "draft": 12.0,
            "terminal_id": "T1",
            "berth_id": "B1",
        }
        draft.update(overrides)
        return draft
    return _make


@pytest.fixture
def make_vessel():
    """Factory for a committed Vessel with overrides."""
    def _make(**overrides):
        fields = {
            "voyage_number": "2025-001-E",
            "vessel_name": "MSC GENEVA",
            "vessel_type": VesselTypeEnum.CONTAINER,
            "eta": at(24),
            "etd": at(48),
            "loa": 250.0,
            "draft": 12.0,
            "terminal_id": "T1",
            "berth_id": "B1",
            "status": VesselStatusEnum.PLANNED,
            "created_at": NOW,
            "updated_at": NOW,
        }
        fields.update(overrides)
        return Vessel(**fields)
    return _make


@pytest.fixture
def slot():
    return InMemorySlot()


@pytest.fixture
def store(slot, terminals, berths):
    """Store over an in-memory slot with the two-berth fixture data."""
    return VesselStore(slot, terminals=terminals, berths=berths, clock=lambda: NOW)


@pytest.fixture
def reference_store(reference):
    """Store wired to the shipped reference data, as the API builds it."""
    return VesselStore(
        InMemorySlot(), terminals=reference.terminals, berths=reference.berths, clock=lambda: NOW,
    )


@pytest.fixture
def mock_db():
    """MagicMock database session (only the health check touches it)."""
    return MagicMock()


@pytest.fixture
def api_client(reference_store, mock_db):
    """TestClient with the store and DB dependencies overridden."""
    def override_get_db():
        yield mock_db

    app.state.store = reference_store
    app.dependency_overrides[get_store] = lambda: reference_store
    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()
    app.state.store = None


@pytest.fixture
def login(api_client):
    """Log in through the API and return the Authorization header."""
    def _login(email="planner@berthboard.com", password="planner123"):
        resp = api_client.post("/api/v1/auth/login", json={"email": email, "password": password})
        assert resp.status_code == 200, resp.text
        return {"Authorization": f"Bearer {resp.json()['token']}"}
    return _login
