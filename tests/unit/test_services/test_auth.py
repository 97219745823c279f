"""Tests for session resolution."""

import pytest
from unittest.mock import MagicMock, patch

from linknow.models.session import SessionContext
from linknow.services.auth import current_user_id, extract_bearer_token, resolve_session
from linknow.utils.errors import Unauthenticated


@pytest.mark.unit
@pytest.mark.parametrize("headers,token", [
    ({"Authorization": "Bearer abc.def"}, "abc.def"),
    ({"authorization": "bearer xyz"}, "xyz"),
    ({"Authorization": "Basic abc"}, None),
    ({"Authorization": "Bearer "}, None),
    ({}, None),
])
def test_extract_bearer_token(headers, token):
    assert extract_bearer_token(headers) == token


@pytest.mark.unit
@pytest.mark.asyncio
async def test_resolve_session_with_valid_token():
    client = MagicMock()
    client.auth.get_user.return_value = MagicMock(user=MagicMock(id="user-1", email="a@example.com"))

    with patch("linknow.services.supabase_client.get_supabase_client", return_value=client):
        session = await resolve_session({"Authorization": "Bearer good-token"})

    assert session.user_id == "user-1"
    assert session.email == "a@example.com"
    assert session.access_token == "good-token"
    client.auth.get_user.assert_called_once_with("good-token")


@pytest.mark.unit
@pytest.mark.asyncio
async def test_resolve_session_with_rejected_token():
    client = MagicMock()
    client.auth.get_user.side_effect = Exception("invalid JWT")

    with patch("linknow.services.supabase_client.get_supabase_client", return_value=client):
        session = await resolve_session({"Authorization": "Bearer expired"})

    assert not session.is_authenticated


@pytest.mark.unit
@pytest.mark.asyncio
async def test_resolve_session_without_header():
    session = await resolve_session({})

    assert session == SessionContext()


@pytest.mark.unit
def test_current_user_id():
    assert current_user_id(SessionContext(user_id="u1")) == "u1"
    with pytest.raises(Unauthenticated):
        current_user_id(SessionContext())
    with pytest.raises(Unauthenticated):
        current_user_id(None)
