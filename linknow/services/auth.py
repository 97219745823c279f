"""Resolve bearer tokens into explicit session contexts via Supabase Auth."""

from typing import Mapping, Optional

from linknow.models.session import SessionContext
from linknow.services.supabase_client import SupabaseClient
from linknow.utils.errors import Unauthenticated
from linknow.utils.logging import get_structured_logger, get_correlation_id, mask_user_id

logger = get_structured_logger(__name__)


def extract_bearer_token(headers: Mapping[str, str]) -> Optional[str]:
    """Pull the token out of an ``Authorization: Bearer <jwt>`` header."""
    value = headers.get("Authorization") or headers.get("authorization") or ""
    scheme, _, token = value.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def resolve_session(headers: Mapping[str, str]) -> SessionContext:
    """Return the caller's session; anonymous when there is no valid token."""
    correlation_id = get_correlation_id()
    token = extract_bearer_token(headers)
    if not token:
        return SessionContext(correlation_id=correlation_id)

    async with SupabaseClient() as client:
        try:
            response = client.auth.get_user(token)
        except Exception as e:
            logger.warning(
                "Token verification failed",
                correlation_id=correlation_id,
                error_type=type(e).__name__
            )
            return SessionContext(correlation_id=correlation_id)

    user = getattr(response, "user", None)
    if user is None:
        return SessionContext(correlation_id=correlation_id)

    logger.debug(
        "Session resolved",
        correlation_id=correlation_id,
        user_id=mask_user_id(user.id)
    )
    return SessionContext(
        user_id=user.id,
        email=getattr(user, "email", None),
        access_token=token,
        correlation_id=correlation_id,
    )


def current_user_id(session: Optional[SessionContext]) -> str:
    """User id of an authenticated session, else ``Unauthenticated``."""
    if session is None or not session.is_authenticated:
        raise Unauthenticated("Not authenticated")
    return session.user_id
