"""Tests for the onboarding wizard and lazy profile creation."""

import pytest
from freezegun import freeze_time

from linknow.models.profile import AgentType, ProfileCreate
from linknow.services import profiles
from linknow.services.onboarding import OnboardingData, OnboardingStep, OnboardingWizard, ensure_profile
from linknow.utils.errors import ValidationFailed
from tests.utils.factories import create_session


def _identity(wizard: OnboardingWizard, name: str = "Ahmed Ali") -> None:
    wizard.set_field("full_name", name)
    wizard.set_field("phone_number", "50 123 4567")
    wizard.set_field("email", "ahmed@example.com")


@pytest.mark.unit
def test_identity_step_derives_slug():
    wizard = OnboardingWizard()
    _identity(wizard)

    assert wizard.next() == OnboardingStep.PROFILE
    assert wizard.data.slug == "ahmed-ali"


@pytest.mark.unit
def test_edited_slug_is_not_overwritten():
    wizard = OnboardingWizard()
    _identity(wizard)
    wizard.set_field("slug", "ahmed-homes")

    wizard.next()

    assert wizard.data.slug == "ahmed-homes"


@pytest.mark.unit
def test_identity_step_requires_name_and_phone():
    wizard = OnboardingWizard()
    wizard.set_field("phone_number", "abc")

    with pytest.raises(ValidationFailed) as exc_info:
        wizard.next()

    assert exc_info.value.field == "full_name"
    assert set(wizard.errors) == {"full_name", "phone_number"}
    assert wizard.step == OnboardingStep.IDENTITY


@pytest.mark.unit
def test_bio_over_limit_rejected_on_set():
    wizard = OnboardingWizard()

    with pytest.raises(ValidationFailed) as exc_info:
        wizard.set_field("bio", "x" * 121)

    assert exc_info.value.field == "bio"


@pytest.mark.unit
def test_back_never_goes_below_first_step():
    wizard = OnboardingWizard()

    assert wizard.back() == OnboardingStep.IDENTITY
    _identity(wizard)
    wizard.next()
    assert wizard.back() == OnboardingStep.IDENTITY


@pytest.mark.unit
def test_walk_to_review():
    wizard = OnboardingWizard()
    _identity(wizard)
    wizard.next()
    wizard.set_field("bio", "Helping families in Dubai")
    wizard.next()
    wizard.set_field("agent_type", "agency")
    wizard.next()

    assert wizard.step == OnboardingStep.LINK
    assert wizard.next() == OnboardingStep.REVIEW
    assert wizard.next() == OnboardingStep.REVIEW
    assert wizard.data.agent_type == AgentType.AGENCY


@pytest.mark.unit
def test_to_profile_create_joins_phone():
    data = OnboardingData(full_name="Ahmed Ali", country_code="+971", phone_number="50 123 4567", slug="ahmed-ali")

    payload = data.to_profile_create()

    assert payload.phone_number == "+971501234567"
    assert payload.slug == "ahmed-ali"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_submit_creates_profile(store, session):
    wizard = OnboardingWizard()
    _identity(wizard)
    for _ in range(4):
        wizard.next()

    profile = await wizard.submit(session)

    assert profile.slug == "ahmed-ali"
    assert profile.phone_number == "+971501234567"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_submit_before_review_fails(store, session):
    with pytest.raises(ValidationFailed):
        await OnboardingWizard().submit(session)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_ensure_profile_returns_existing(store, session):
    existing = await profiles.create_profile_for_user(session, ProfileCreate(slug="ahmed-ali", full_name="Ahmed Ali"))

    profile = await ensure_profile(session, OnboardingData(full_name="Other", slug="other"))

    assert profile.id == existing.id
    assert len(store.calls_to("create_profile")) == 1


@pytest.mark.unit
@pytest.mark.asyncio
async def test_ensure_profile_uses_staging_data(store, session):
    staging = OnboardingData(full_name="Sara Khan", phone_number="50 222 3333", slug="sara-khan")

    profile = await ensure_profile(session, staging)

    assert profile.slug == "sara-khan"
    assert profile.full_name == "Sara Khan"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_ensure_profile_falls_back_without_staging(store, session):
    with freeze_time("2024-12-09 12:00:00"):
        profile = await ensure_profile(session)

    assert profile.slug == "agent-1733745600000"
    assert profile.full_name == "New Agent"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_ensure_profile_falls_back_when_slug_taken(store, session):
    await profiles.create_profile_for_user(create_session(), ProfileCreate(slug="sara-khan", full_name="Sara"))

    with freeze_time("2024-12-09 12:00:00"):
        profile = await ensure_profile(session, OnboardingData(full_name="Sara Khan", slug="sara-khan"))

    assert profile.slug == "agent-1733745600000"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_ensure_profile_falls_back_on_invalid_staging(store, session):
    with freeze_time("2024-12-09 12:00:00"):
        profile = await ensure_profile(session, OnboardingData(full_name="", slug="x"))

    assert profile.full_name == "New Agent"
