"""Session context passed explicitly through every profile/listing operation."""

from typing import Optional
from pydantic import BaseModel, Field


class SessionContext(BaseModel):
    """Who is calling. An anonymous context has no user_id."""
    user_id: Optional[str] = Field(None, description="Authenticated user ID")
    email: Optional[str] = Field(None, description="Authenticated user email")
    access_token: Optional[str] = Field(None, description="Bearer token the session was resolved from")
    correlation_id: Optional[str] = Field(None, description="Request correlation ID")

    @property
    def is_authenticated(self) -> bool:
        return bool(self.user_id)
