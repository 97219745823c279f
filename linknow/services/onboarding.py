"""Onboarding wizard - collect staging data step by step, then create the profile."""

import re
import time
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, ValidationError

from linknow.models.profile import BIO_MAX_LENGTH, AgentType, Profile, ProfileCreate
from linknow.models.session import SessionContext
from linknow.services import profiles
from linknow.services.validation import (
    derive_slug,
    validate_bio,
    validate_email,
    validate_full_name,
    validate_phone,
    validate_slug,
)
from linknow.utils.errors import NotFound, ValidationFailed
from linknow.utils.logging import get_structured_logger, get_correlation_id, mask_user_id

logger = get_structured_logger(__name__)

DEFAULT_COUNTRY_CODE = "+971"
FALLBACK_FULL_NAME = "New Agent"


class OnboardingStep(str, Enum):
    IDENTITY = "identity"
    PROFILE = "profile"
    LOCATION = "location"
    LINK = "link"
    REVIEW = "review"


STEPS = list(OnboardingStep)


class OnboardingData(BaseModel):
    """Answers collected before a profile exists."""
    full_name: str = ""
    country_code: str = Field(default=DEFAULT_COUNTRY_CODE, description="Dialing prefix, e.g. +971")
    phone_number: str = Field(default="", description="Local part, spaces allowed")
    email: str = ""
    bio: str = Field(default="", max_length=BIO_MAX_LENGTH)
    location: str = ""
    agent_type: AgentType = AgentType.INDEPENDENT
    slug: str = ""

    def full_phone_number(self) -> str:
        local = re.sub(r'\s', '', self.phone_number)
        return f"{self.country_code}{local}" if local else ""

    def to_profile_create(self) -> ProfileCreate:
        """Raises pydantic ``ValidationError`` when the answers are incomplete."""
        return ProfileCreate(
            slug=self.slug,
            full_name=self.full_name.strip(),
            phone_number=self.full_phone_number(),
            email=self.email,
            bio=self.bio,
            location=self.location,
            agent_type=self.agent_type,
        )


def _step_errors(step: OnboardingStep, data: OnboardingData) -> dict[str, str]:
    checks = []
    if step == OnboardingStep.IDENTITY:
        checks = [
            ("full_name", validate_full_name(data.full_name)),
            ("phone_number", validate_phone(data.phone_number, required=True)),
            ("email", validate_email(data.email)),
        ]
    elif step == OnboardingStep.PROFILE:
        checks = [("bio", validate_bio(data.bio))]
    elif step == OnboardingStep.LINK:
        checks = [("slug", validate_slug(data.slug))]
    return {field: message for field, (valid, message) in checks if not valid}


class OnboardingWizard:
    """Step machine over ``OnboardingData``.

    Leaving the identity step derives the slug from the full name until the
    user edits the slug themselves.
    """

    def __init__(self, data: Optional[OnboardingData] = None):
        self.data = data or OnboardingData()
        self.step_index = 0
        self.slug_edited = bool(self.data.slug)
        self.errors: dict[str, str] = {}

    @property
    def step(self) -> OnboardingStep:
        return STEPS[self.step_index]

    @property
    def is_review(self) -> bool:
        return self.step == OnboardingStep.REVIEW

    def set_field(self, field: str, value) -> None:
        if field not in OnboardingData.model_fields:
            raise ValidationFailed(field, f"Unknown onboarding field: {field}")
        try:
            self.data = OnboardingData.model_validate({**self.data.model_dump(), field: value})
        except ValidationError as e:
            raise profiles.validation_failed_from(e)
        if field == "slug":
            self.slug_edited = True
        self.errors.pop(field, None)

    def next(self) -> OnboardingStep:
        """Validate the current step and advance; ``ValidationFailed`` on the first bad field."""
        self.errors = _step_errors(self.step, self.data)
        if self.errors:
            field, message = next(iter(self.errors.items()))
            raise ValidationFailed(field, message)

        if self.step == OnboardingStep.IDENTITY and not self.slug_edited:
            self.data = self.data.model_copy(update={"slug": derive_slug(self.data.full_name)})

        if self.step_index < len(STEPS) - 1:
            self.step_index += 1
        return self.step

    def back(self) -> OnboardingStep:
        self.step_index = max(0, self.step_index - 1)
        return self.step

    async def check_slug(self) -> bool:
        return await profiles.is_slug_available(self.data.slug)

    async def submit(self, session: SessionContext) -> Profile:
        if not self.is_review:
            raise ValidationFailed("step", "Finish every step before submitting")
        try:
            payload = self.data.to_profile_create()
        except ValidationError as e:
            raise profiles.validation_failed_from(e)
        return await profiles.create_profile_for_user(session, payload)


def _fallback_profile() -> ProfileCreate:
    return ProfileCreate(
        slug=f"agent-{int(time.time() * 1000)}",
        full_name=FALLBACK_FULL_NAME,
    )


async def ensure_profile(session: SessionContext, staging: Optional[OnboardingData] = None) -> Profile:
    """Return the caller's profile, creating it from staging data on first visit."""
    try:
        return await profiles.get_own_profile(session)
    except NotFound:
        pass

    correlation_id = get_correlation_id()
    payload = None
    if staging is not None:
        try:
            payload = staging.to_profile_create()
        except ValidationError:
            logger.warning(
                "Onboarding staging data invalid, using fallback profile",
                correlation_id=correlation_id,
                user_id=mask_user_id(session.user_id or "")
            )

    if payload is not None:
        try:
            return await profiles.create_profile_for_user(session, payload)
        except ValidationFailed as e:
            logger.warning(
                "Staged profile rejected, using fallback profile",
                correlation_id=correlation_id,
                field=e.field,
                error=e.message
            )

    return await profiles.create_profile_for_user(session, _fallback_profile())
