"""API test fixtures: the real app over Mock(spec=...) services."""

from datetime import timedelta
from unittest.mock import Mock

import pytest
from starlette.testclient import TestClient

from api.app import create_app
from auth.service import AccountAccess, AuthService
from auth.types import Session
from core.models.user import AppRole
from core.roles import capabilities_for
from core.services.devis_service import DevisService
from core.services.lead_service import LeadService
from core.services.quote_dispatch_service import QuoteDispatchService
from core.services.user_service import UserService
from utils.timezone import now_utc

from factories import TEST_USER_EMAIL


def access(user_id, role: AppRole) -> AccountAccess:
    return AccountAccess(user_id=user_id, role=role, capabilities=capabilities_for(role))


# =============================================================================
# SERVICE FIXTURES
# =============================================================================


@pytest.fixture
def lead_service():
    return Mock(spec=LeadService)


@pytest.fixture
def devis_service():
    return Mock(spec=DevisService)


@pytest.fixture
def user_service():
    return Mock(spec=UserService)


@pytest.fixture
def quote_dispatch():
    return Mock(spec=QuoteDispatchService)


@pytest.fixture
def role():
    """Role the signed-in test account holds. Override per module or test."""
    return AppRole.ADMIN


@pytest.fixture
def auth_service(test_user_id, role):
    now = now_utc()
    mock = Mock(spec=AuthService)
    mock.validate_session.return_value = Session(
        token="test-token",
        user_id=test_user_id,
        email=TEST_USER_EMAIL,
        created_at=now,
        expires_at=now + timedelta(hours=12),
        last_activity_at=now,
    )
    mock.access_for.return_value = access(test_user_id, role)
    return mock


@pytest.fixture
def services(lead_service, devis_service, user_service, quote_dispatch, auth_service):
    return {
        "lead": lead_service,
        "devis": devis_service,
        "user": user_service,
        "quote_dispatch": quote_dispatch,
        "auth": auth_service,
    }


# =============================================================================
# APP & CLIENT FIXTURES
# =============================================================================


@pytest.fixture
def app(services):
    return create_app(services, secure_cookies=False)


@pytest.fixture
def client(app):
    """Authenticated test client."""
    c = TestClient(app, raise_server_exceptions=False)
    c.cookies.set("session_token", "test-token")
    return c


@pytest.fixture
def unauthed_client(app):
    """Unauthenticated test client (no session cookie)."""
    return TestClient(app, raise_server_exceptions=False)
