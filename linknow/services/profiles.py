"""Profile service - session-explicit create/read/update of a user's profile."""

import os
from typing import Optional

from pydantic import ValidationError

from linknow.models.profile import Profile, ProfileCreate, ProfileUpdate
from linknow.models.session import SessionContext
from linknow.services import supabase_client
from linknow.services.auth import current_user_id
from linknow.services.validation import (
    normalize_phone,
    validate_email,
    validate_phone,
    validate_profile_field,
    validate_slug,
)
from linknow.utils.errors import NotFound, ValidationFailed
from linknow.utils.logging import get_structured_logger, get_correlation_id, mask_user_id

logger = get_structured_logger(__name__)

# Phones shared by several accounts; those accounts are told apart by email
WHITELISTED_PHONES = frozenset(
    normalize_phone(phone)
    for phone in os.environ.get("WHITELISTED_PHONES", "+971565829169").split(",")
    if phone.strip()
)


def validation_failed_from(error: ValidationError) -> ValidationFailed:
    """First pydantic error as a field-level ``ValidationFailed``."""
    first = error.errors()[0]
    field = str(first["loc"][0]) if first.get("loc") else "body"
    return ValidationFailed(field, first.get("msg", "Invalid value"))


async def _check_phone_available(phone_number: str, email: str) -> None:
    if not phone_number:
        return
    if normalize_phone(phone_number) in WHITELISTED_PHONES:
        if not email:
            raise ValidationFailed("email", "Email is required for this phone number")
        if await supabase_client.find_profile_by_phone(phone_number, email):
            raise ValidationFailed("phone_number", "An account with this phone number and email already exists")
        return
    if await supabase_client.find_profile_by_phone(phone_number):
        raise ValidationFailed("phone_number", "This phone number is already registered")


async def create_profile_for_user(session: SessionContext, payload: ProfileCreate) -> Profile:
    """Create the caller's profile; one per user, unique slug and phone."""
    user_id = current_user_id(session)
    correlation_id = get_correlation_id()

    if await supabase_client.get_profile_by_user_id(user_id):
        raise ValidationFailed("profile", "Profile already exists")

    valid, message = validate_slug(payload.slug)
    if not valid:
        raise ValidationFailed("slug", message)
    valid, message = validate_phone(payload.phone_number)
    if not valid:
        raise ValidationFailed("phone_number", message)
    valid, message = validate_email(payload.email)
    if not valid:
        raise ValidationFailed("email", message)

    await _check_phone_available(payload.phone_number, payload.email)

    if await supabase_client.get_profile_by_slug(payload.slug):
        raise ValidationFailed("slug", "This link is already taken")

    record = await supabase_client.create_profile(user_id, payload.model_dump(mode="json"))
    logger.info(
        "Profile created",
        correlation_id=correlation_id,
        user_id=mask_user_id(user_id),
        profile_id=record.get("id")
    )
    return Profile.model_validate(record)


async def get_own_profile(session: SessionContext) -> Profile:
    """The caller's profile, or ``NotFound`` before onboarding completes."""
    user_id = current_user_id(session)
    record = await supabase_client.get_profile_by_user_id(user_id)
    if not record:
        raise NotFound("Profile not found")
    return Profile.model_validate(record)


async def update_own_profile(session: SessionContext, updates: dict) -> Profile:
    """Apply a partial update to the caller's profile."""
    profile = await get_own_profile(session)

    try:
        changes = ProfileUpdate.model_validate(updates).to_updates()
    except ValidationError as e:
        raise validation_failed_from(e)

    for field, value in changes.items():
        valid, message = validate_profile_field(field, value)
        if not valid:
            raise ValidationFailed(field, message)

    if not changes:
        return profile

    new_slug = changes.get("slug")
    if new_slug and new_slug != profile.slug:
        owner = await supabase_client.get_profile_by_slug(new_slug)
        if owner and owner.get("id") != profile.id:
            raise ValidationFailed("slug", "This link is already taken")

    record = await supabase_client.update_profile(profile.id, changes)
    logger.debug(
        "Profile updated",
        correlation_id=get_correlation_id(),
        profile_id=profile.id,
        fields=sorted(changes)
    )
    return Profile.model_validate(record)


async def is_slug_available(slug: str, session: Optional[SessionContext] = None) -> bool:
    """Valid, not reserved, and free (or already the caller's own)."""
    valid, _ = validate_slug(slug)
    if not valid:
        return False
    owner = await supabase_client.get_profile_by_slug(slug)
    if not owner:
        return True
    return session is not None and session.is_authenticated and owner.get("user_id") == session.user_id
