import os
import uuid
from datetime import datetime, timedelta, timezone

os.environ.setdefault("TRANSTRACK_BCRYPT_ROUNDS", "4")
os.environ.setdefault("TRANSTRACK_AUTO_AUTHORIZE_DEMO", "true")
os.environ.setdefault("TRANSTRACK_DEMO_USER_ROLE", "admin")

import httpx
import pytest
from mongomock_motor import AsyncMongoMockClient

from transtrack.models.donor import DonorOrgan
from transtrack.models.patient import Patient
from transtrack.models.user import UserPublic
from transtrack.store import Stores


FIXED_NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def now() -> datetime:
    """A fixed clock so day counts are reproducible."""
    return FIXED_NOW


@pytest.fixture
def days_ago(now):
    def _days_ago(days: int) -> datetime:
        return now - timedelta(days=days)

    return _days_ago


@pytest.fixture
def make_patient():
    counter = {"n": 0}

    def _make_patient(**fields) -> Patient:
        counter["n"] += 1
        data = {"id": f"patient-{counter['n']}", "first_name": "Test", "last_name": f"Patient{counter['n']}"}
        data.update(fields)
        return Patient.model_validate(data)

    return _make_patient


@pytest.fixture
def make_donor():
    def _make_donor(**fields) -> DonorOrgan:
        data = {"id": "donor-organ-1", "donor_id": "D-100"}
        data.update(fields)
        return DonorOrgan.model_validate(data)

    return _make_donor


@pytest.fixture
def database():
    return AsyncMongoMockClient()[f"transtrack_test_{uuid.uuid4().hex}"]


@pytest.fixture
def stores(database) -> Stores:
    return Stores.from_database(database)


@pytest.fixture
def admin_user() -> UserPublic:
    return UserPublic(id="admin-1", email="admin@transtrack.org", name="Ada Admin", role="admin")


@pytest.fixture
def live_events():
    return []


@pytest.fixture
async def client(database, live_events):
    from transtrack.database import get_database
    from transtrack.live import get_event_sink
    from transtrack.main import app

    async def record(event) -> None:
        live_events.append(event)

    app.dependency_overrides[get_database] = lambda: database
    app.dependency_overrides[get_event_sink] = lambda: record
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as http_client:
        yield http_client
    app.dependency_overrides.clear()
