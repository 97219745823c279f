"""Profile models - one public agent profile per user."""

from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, Field, model_validator

BIO_MAX_LENGTH = 120
SLUG_PATTERN = r"^[a-z0-9-]+$"

SOCIAL_LINK_FIELDS = (
    "instagram_url",
    "linkedin_url",
    "tiktok_url",
    "youtube_url",
    "twitter_url",
    "facebook_url",
)


class AgentType(str, Enum):
    """Agent business types."""
    INDEPENDENT = "independent"
    AGENCY = "agency"


class StoredModel(BaseModel):
    """Base for models read from Supabase rows, where NULL columns fall back to defaults."""

    @model_validator(mode="before")
    @classmethod
    def drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data


class Profile(StoredModel):
    """Agent profile - identity, presentation and contact links."""
    id: str = Field(..., description="Profile ID")
    user_id: str = Field(..., description="Owning user ID")
    slug: str = Field(..., min_length=3, pattern=SLUG_PATTERN, description="Public URL slug")
    full_name: str = Field(..., description="Full name")
    phone_number: str = Field(default="", description="Phone number incl. country code")
    email: str = Field(default="", description="Contact email")
    whatsapp_number: str = Field(default="", description="WhatsApp number if different from phone")
    bio: str = Field(default="", max_length=BIO_MAX_LENGTH)
    location: str = Field(default="", description="Base location")
    agent_type: AgentType = Field(default=AgentType.INDEPENDENT)
    avatar_url: str = Field(default="", description="Avatar image reference")
    avatar_position: int = Field(default=50, ge=0, le=100, description="Vertical crop position")
    cover_photo_url: str = Field(default="", description="Cover photo reference")
    rera_id: str = Field(default="", description="RERA registration number")
    instagram_url: str = ""
    linkedin_url: str = ""
    tiktok_url: str = ""
    youtube_url: str = ""
    twitter_url: str = ""
    facebook_url: str = ""
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class ProfileCreate(StoredModel):
    """Payload for creating a profile."""
    slug: str = Field(..., min_length=3, pattern=SLUG_PATTERN)
    full_name: str = Field(..., min_length=1)
    phone_number: str = Field(default="")
    email: str = Field(default="")
    whatsapp_number: str = Field(default="")
    bio: str = Field(default="", max_length=BIO_MAX_LENGTH)
    location: str = Field(default="")
    agent_type: AgentType = Field(default=AgentType.INDEPENDENT)
    avatar_url: str = Field(default="")
    avatar_position: int = Field(default=50, ge=0, le=100)
    cover_photo_url: str = Field(default="")
    rera_id: str = Field(default="")


class ProfileUpdate(BaseModel):
    """Partial profile update; only set fields are written."""
    slug: Optional[str] = Field(None, min_length=3, pattern=SLUG_PATTERN)
    full_name: Optional[str] = Field(None, min_length=1)
    phone_number: Optional[str] = None
    email: Optional[str] = None
    whatsapp_number: Optional[str] = None
    bio: Optional[str] = Field(None, max_length=BIO_MAX_LENGTH)
    location: Optional[str] = None
    agent_type: Optional[AgentType] = None
    avatar_url: Optional[str] = None
    avatar_position: Optional[int] = Field(None, ge=0, le=100)
    cover_photo_url: Optional[str] = None
    rera_id: Optional[str] = None
    instagram_url: Optional[str] = None
    linkedin_url: Optional[str] = None
    tiktok_url: Optional[str] = None
    youtube_url: Optional[str] = None
    twitter_url: Optional[str] = None
    facebook_url: Optional[str] = None

    def to_updates(self) -> dict:
        return self.model_dump(exclude_unset=True, mode="json")
