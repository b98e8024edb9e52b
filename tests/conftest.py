import pytest
from fastapi.testclient import TestClient

from paygate.config import settings
from paygate.dependencies import get_contact_broker, get_donation_broker, get_mailer
from paygate.main import app
from paygate.middleware.rate_limit import limiter
from paygate.models.capability_token import FlowKind
from paygate.services.deferred_action_broker import DeferredActionBroker
from paygate.services.token_store import TokenStore
from tests.test_utils import FakeClock, FakeGateway, FakeMailer


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def donation_broker(clock, gateway):
    return DeferredActionBroker(
        FlowKind.DONATION, TokenStore(clock=clock), gateway, description="Donation"
    )


@pytest.fixture
def contact_broker(clock, gateway):
    return DeferredActionBroker(
        FlowKind.CONTACT, TokenStore(clock=clock), gateway, description="Contact request"
    )


@pytest.fixture
def upload_dir(tmp_path, monkeypatch):
    path = tmp_path / "uploads"
    path.mkdir()
    monkeypatch.setattr(settings, "upload_dir", str(path))
    return path


@pytest.fixture
def client(donation_broker, contact_broker, mailer, upload_dir):
    """Test client with fake gateway/mailer, fresh token stores and no rate limiting."""
    app.dependency_overrides[get_donation_broker] = lambda: donation_broker
    app.dependency_overrides[get_contact_broker] = lambda: contact_broker
    app.dependency_overrides[get_mailer] = lambda: mailer

    # Disable rate limiting for tests
    limiter.enabled = False

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
    limiter.enabled = True
