"""Shared pytest fixtures and configuration."""

import os
import pytest
from unittest.mock import Mock, AsyncMock, MagicMock, patch
from freezegun import freeze_time

# Set test environment variables
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test-key")
os.environ.setdefault("STORAGE_BUCKET", "uploads")
os.environ.setdefault("LLM_PROVIDER", "openai")
os.environ.setdefault("LLM_MODEL", "gpt-4o-mini")
os.environ.setdefault("OPENAI_API_KEY", "test-openai-key")
os.environ.setdefault("WHITELISTED_PHONES", "+971565829169")
os.environ.setdefault("PUBLIC_BASE_URL", "https://linknow.live")

from linknow.models.session import SessionContext
from tests.utils.factories import create_profile_data
from tests.utils.helpers import InMemoryStore


@pytest.fixture(autouse=True)
def keep_pytest_log_handlers(monkeypatch):
    """Endpoints configure root logging once per process; skip it under pytest."""
    import linknow.utils.http as http_utils
    monkeypatch.setattr(http_utils, "_logging_configured", True)


@pytest.fixture
def mock_supabase_client():
    """Mock Supabase client for testing."""
    client = Mock()
    client.table = Mock(return_value=Mock())
    client.auth = Mock()
    client.storage = Mock()
    return client


@pytest.fixture
def mock_llm_model():
    """Chat model whose ainvoke returns a message with ``content``."""
    model = MagicMock()
    model.ainvoke = AsyncMock(return_value=Mock(content="Dubai Marina specialist helping families find their next home."))
    return model


@pytest.fixture
def session():
    """Authenticated session."""
    return SessionContext(user_id="user_1234567890abcdef", email="agent@example.com", access_token="token")


@pytest.fixture
def anonymous_session():
    return SessionContext()


@pytest.fixture
def sample_profile_row(session):
    """Profile row as returned by the profiles table."""
    return create_profile_data(user_id=session.user_id, slug="ahmed-ali", full_name="Ahmed Ali")


@pytest.fixture
def store(monkeypatch):
    """In-memory stand-in for the Supabase gateway functions."""
    memory = InMemoryStore()
    memory.install(monkeypatch)
    return memory


@pytest.fixture
def freeze_time_fixture():
    """Fixture for freezing time in tests."""
    with freeze_time("2024-12-09 12:00:00") as frozen_time:
        yield frozen_time


@pytest.fixture
def signed_in(session):
    """Endpoints see ``session`` as the caller."""
    with patch("linknow.utils.http.resolve_session", new=AsyncMock(return_value=session)) as mock:
        yield mock


@pytest.fixture
def signed_out(anonymous_session):
    """Endpoints see an anonymous caller."""
    with patch("linknow.utils.http.resolve_session", new=AsyncMock(return_value=anonymous_session)) as mock:
        yield mock
