"""Tests for the unauthenticated public page endpoints."""

import pytest
from unittest.mock import AsyncMock, patch
from urllib.parse import unquote

from api.public.contact import handler as contact_handler
from api.public.profile import handler as public_profile_handler
from tests.utils.assertions import assert_error_response
from tests.utils.factories import create_profile_data, create_property_data
from tests.utils.helpers import call_handler


@pytest.fixture
def agent(store):
    row = create_profile_data(slug="ahmed-ali", full_name="Ahmed Ali", phone_number="+971 50 123 4567")
    store.profiles[row["id"]] = row
    for order in range(2):
        listing = create_property_data(profile_id=row["id"], display_order=order, images=["u/1.jpg"])
        store.properties[listing["id"]] = listing
    return row


@pytest.fixture
def public_urls():
    resolve = AsyncMock(side_effect=lambda ref: f"https://cdn.example/{ref}" if ref else "")
    with patch("linknow.services.public_profile.resolve_image_url", new=resolve):
        yield resolve


@pytest.mark.unit
def test_public_profile(agent, store, public_urls):
    status, body = call_handler(public_profile_handler, "GET", "/api/public/profile?slug=ahmed-ali")

    assert status == 200
    assert body["profile"]["slug"] == "ahmed-ali"
    assert "user_id" not in body["profile"]
    assert len(body["listings"]) == 2
    assert body["listings"][0]["image_urls"] == ["https://cdn.example/u/1.jpg"]
    assert body["whatsapp_url"].startswith("https://wa.me/971501234567?text=")


@pytest.mark.unit
def test_public_profile_requires_slug(store, public_urls):
    status, body = call_handler(public_profile_handler, "GET", "/api/public/profile")

    assert_error_response(status, body, 400, field="slug")


@pytest.mark.unit
def test_public_profile_unknown_slug(store, public_urls):
    status, body = call_handler(public_profile_handler, "GET", "/api/public/profile?slug=nobody")

    assert_error_response(status, body, 404)


@pytest.mark.unit
def test_booking_link(agent, store):
    status, body = call_handler(contact_handler, "POST", "/api/public/contact", body={
        "slug": "ahmed-ali",
        "kind": "booking",
        "name": "Omar",
        "preferred_time": "morning",
    })

    assert status == 200
    assert body["url"].startswith("https://wa.me/971501234567?text=")
    assert "Preferred time: Morning (9-12)" in unquote(body["url"])


@pytest.mark.unit
def test_property_request_link(agent, store):
    status, body = call_handler(contact_handler, "POST", "/api/public/contact", body={
        "slug": "ahmed-ali",
        "kind": "request",
        "bedrooms": "2",
        "purpose": "Buy",
    })

    assert status == 200
    assert "• Bedrooms: 2\n• Purpose: Buy" in unquote(body["url"])


@pytest.mark.unit
def test_contact_rejects_unknown_kind(agent, store):
    status, body = call_handler(contact_handler, "POST", "/api/public/contact", body={"slug": "ahmed-ali", "kind": "fax"})

    assert_error_response(status, body, 400, field="kind")


@pytest.mark.unit
def test_contact_rejects_bad_time_slot(agent, store):
    status, body = call_handler(contact_handler, "POST", "/api/public/contact", body={
        "slug": "ahmed-ali",
        "kind": "booking",
        "preferred_time": "midnight",
    })

    assert_error_response(status, body, 400, field="preferred_time")


@pytest.mark.unit
def test_contact_without_number(store):
    row = create_profile_data(slug="no-phone", phone_number=None)
    store.profiles[row["id"]] = row

    status, body = call_handler(contact_handler, "POST", "/api/public/contact", body={"slug": "no-phone", "kind": "booking"})

    assert_error_response(status, body, 400, field="whatsapp_number")


@pytest.mark.unit
def test_contact_unknown_slug(store):
    status, body = call_handler(contact_handler, "POST", "/api/public/contact", body={"slug": "nobody", "kind": "booking"})

    assert_error_response(status, body, 404)
