import pytest
from fastapi.testclient import TestClient

from aurora_backend.core import config
from aurora_backend.core.auth import get_identity_provider
from aurora_backend.core.db import get_admin_store, get_appointment_store, get_content_store
from aurora_backend.main import create_app

from tests.fakes import FakeAdminStore, FakeAppointmentStore, FakeContentStore, FakeIdentityProvider

ADMIN_UID = "admin-uid"
ADMIN_EMAIL = "admin@aurorabeauty.com"

VALID_BOOKING = {
    "name": "Rina",
    "phone": "081234567890",
    "email": "rina@x.com",
    "service": "Facial Glow",
    "date": "2025-01-10",
}


@pytest.fixture(autouse=True)
def no_real_email(monkeypatch):
    monkeypatch.setattr(config, "RESEND_API_KEY", None)


@pytest.fixture
def appointment_store():
    return FakeAppointmentStore()


@pytest.fixture
def content_store():
    return FakeContentStore()


@pytest.fixture
def admin_store():
    return FakeAdminStore()


@pytest.fixture
def identity():
    return FakeIdentityProvider()


@pytest.fixture
def app(appointment_store, content_store, admin_store, identity):
    app = create_app()
    app.dependency_overrides[get_appointment_store] = lambda: appointment_store
    app.dependency_overrides[get_content_store] = lambda: content_store
    app.dependency_overrides[get_admin_store] = lambda: admin_store
    app.dependency_overrides[get_identity_provider] = lambda: identity
    return app


@pytest.fixture
def client(app):
    with TestClient(app) as client:
        yield client


@pytest.fixture
def admin_headers(admin_store, identity):
    identity.add_user(ADMIN_UID, ADMIN_EMAIL)
    admin_store.admins[ADMIN_UID] = {"uid": ADMIN_UID, "email": ADMIN_EMAIL}
    return {"Authorization": f"Bearer {identity.token_for(ADMIN_UID)}"}


@pytest.fixture
def book(client):
    """Submits a booking through the public endpoint and returns the JSON body."""
    def _book(**overrides):
        response = client.post("/api/v1/appointments", json={**VALID_BOOKING, **overrides})
        assert response.status_code == 201, response.text
        return response.json()
    return _book
