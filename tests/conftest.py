"""Shared test fixtures for the back-office test suite."""

import pytest
from pathlib import Path
from unittest.mock import Mock

from dotenv import load_dotenv

# Load .env file BEFORE any other imports that might use env vars
# override=True ensures .env takes precedence over shell env vars
load_dotenv(Path(__file__).parent.parent / ".env", override=True)

# Reset vault client singleton to pick up env vars
import clients.vault_client as vault_module
vault_module._vault_client_instance = None
vault_module._secret_cache.clear()

from clients.postgres_client import PostgresClient
from clients.valkey_client import ValkeyClient
from core.cache import QueryCache
from core.change_publisher import ChangePublisher
from core.models.user import AppRole
from utils.user_context import user_context, clear_current_user_id
from views.notifications import Notifier

from factories import FakeRealtime, TEST_USER_B_ID, TEST_USER_ID, gate_for


# =============================================================================
# USER CONTEXT FIXTURES
# =============================================================================


@pytest.fixture(autouse=True)
def reset_user_context():
    """Ensure clean user context before and after each test."""
    clear_current_user_id()
    yield
    clear_current_user_id()


@pytest.fixture
def test_user_id():
    """The primary test user's ID."""
    return TEST_USER_ID


@pytest.fixture
def test_user_b_id():
    """The secondary test user's ID."""
    return TEST_USER_B_ID


@pytest.fixture
def as_test_user(test_user_id):
    """Context manager that sets primary test user context."""
    with user_context(test_user_id):
        yield test_user_id


# =============================================================================
# COLLABORATOR FIXTURES
# =============================================================================


@pytest.fixture
def db():
    """PostgresClient stand-in; tests set execute/execute_single/execute_returning results."""
    return Mock(spec=PostgresClient)


@pytest.fixture
def changes():
    return Mock(spec=ChangePublisher)


@pytest.fixture
def valkey():
    """In-memory ValkeyClient stand-in for the json/delete calls sessions use."""
    store = {}
    mock = Mock(spec=ValkeyClient)
    mock.store = store

    def set_json(key, value, expire_seconds=None):
        store[key] = value

    def delete(key):
        return store.pop(key, None) is not None

    mock.set_json.side_effect = set_json
    mock.get_json.side_effect = store.get
    mock.delete.side_effect = delete
    return mock


@pytest.fixture
def realtime():
    return FakeRealtime()


@pytest.fixture
def cache():
    return QueryCache()


@pytest.fixture
def notifier():
    return Notifier()


# =============================================================================
# ROLE FIXTURES
# =============================================================================


@pytest.fixture
def admin_gate():
    return gate_for(AppRole.ADMIN)


@pytest.fixture
def secretary_gate():
    return gate_for(AppRole.SECRETAIRE)


@pytest.fixture
def reader_gate():
    return gate_for(AppRole.LECTEUR)
