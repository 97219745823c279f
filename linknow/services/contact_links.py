"""WhatsApp, email and share links for the public profile's contact widgets."""

import os
import re
from enum import Enum
from typing import Optional
from urllib.parse import quote

from pydantic import BaseModel, Field

from linknow.models.listing import Listing, TransactionType
from linknow.models.profile import Profile
from linknow.services.validation import format_price

PUBLIC_BASE_URL = os.environ.get("PUBLIC_BASE_URL", "https://linknow.live").rstrip("/")


class TimeSlot(str, Enum):
    """Preferred call times offered by the booking form."""
    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"

    @property
    def label(self) -> str:
        return {
            TimeSlot.MORNING: "Morning (9-12)",
            TimeSlot.AFTERNOON: "Afternoon (12-5)",
            TimeSlot.EVENING: "Evening (5-8)",
        }[self]


class BookingRequest(BaseModel):
    """30-minute call booking form."""
    name: str = Field(default="", description="Visitor name")
    phone: str = Field(default="", description="Visitor phone")
    preferred_time: Optional[TimeSlot] = Field(None, description="Preferred time slot")


class PropertyRequest(BaseModel):
    """Property request form; every field is optional."""
    name: str = ""
    bedrooms: str = Field(default="", description="Count or 'Studio'")
    purpose: str = Field(default="", description="Rent or Buy")
    property_type: str = ""
    location: str = ""
    budget: str = Field(default="", description="Budget in AED")


def whatsapp_number(profile: Profile) -> str:
    """Digits of the WhatsApp number, falling back to the phone number."""
    return re.sub(r'[^0-9]', '', profile.whatsapp_number or profile.phone_number or "")


def whatsapp_link(number: str, message: str) -> str:
    if not number:
        return ""
    return f"https://wa.me/{number}?text={quote(message, safe='')}"


def property_enquiry_message(profile: Profile, listing: Listing) -> str:
    bedroom_text = f"{listing.bedrooms}-bedroom" if listing.bedrooms else ""
    type_label = f"{bedroom_text} {listing.property_type.value}" if bedroom_text else listing.property_type.value
    status = "for rent" if listing.transaction_type == TransactionType.RENT else "for sale"
    price = format_price(listing.price) or "enquiry"
    location = listing.location or "Dubai"
    return (
        f"Hi {profile.full_name}, I'm interested in this property:\n\n"
        f"• Type: {type_label}\n"
        f"• Status: {status}\n"
        f"• Location: {location}\n"
        f"• Price: {price} AED\n\n"
        "Please share more details."
    )


def general_enquiry_message(profile: Profile) -> str:
    return (
        f"Hi {profile.full_name}, I found your Linknow page and would like to enquire "
        "about your available properties."
    )


def connect_message(profile: Profile) -> str:
    return f"Hi {profile.full_name}, I'd like to connect with you about your properties."


def booking_message(profile: Profile, booking: BookingRequest) -> str:
    parts = [f"Name: {booking.name or 'Not provided'}"]
    if booking.phone:
        parts.append(f"Phone: {booking.phone}")
    if booking.preferred_time:
        parts.append(f"Preferred time: {booking.preferred_time.label}")
    details = "\n".join(parts)
    return (
        f"Hi {profile.full_name}, I'd like to book a 30-minute consultation call.\n\n"
        f"{details}\n\nPlease confirm a suitable time."
    )


def property_request_message(profile: Profile, request: PropertyRequest) -> str:
    parts = []
    if request.name:
        parts.append(f"• Name: {request.name}")
    if request.bedrooms:
        parts.append(f"• Bedrooms: {request.bedrooms}")
    if request.purpose:
        parts.append(f"• Purpose: {request.purpose}")
    if request.property_type:
        parts.append(f"• Property Type: {request.property_type}")
    if request.location:
        parts.append(f"• Location: {request.location}")
    if request.budget:
        parts.append(f"• Budget: {request.budget} AED")
    details = "\n".join(parts) if parts else "• Looking for a property"
    return (
        f"Hi {profile.full_name}, I'm looking for a property:\n\n"
        f"{details}\n\nPlease help me find something suitable."
    )


def email_link(profile: Profile) -> str:
    subject = f"Property Inquiry - {profile.full_name}"
    body = (
        f"Hi {profile.full_name},\n\n"
        "I found your profile on Linknow and would like to enquire about your properties.\n\n"
        "Please get back to me at your earliest convenience.\n\n"
        "Thank you"
    )
    return f"mailto:{profile.email}?subject={quote(subject, safe='')}&body={quote(body, safe='')}"


def profile_url(slug: str, base_url: str = PUBLIC_BASE_URL) -> str:
    return f"{base_url}/{slug}"


def share_link(slug: str, base_url: str = PUBLIC_BASE_URL) -> str:
    """WhatsApp share of the agent's public page (no recipient)."""
    text = f"Check out my real estate profile: {profile_url(slug, base_url)}"
    return f"https://wa.me/?text={quote(text, safe='')}"


def booking_link(profile: Profile, booking: BookingRequest) -> str:
    return whatsapp_link(whatsapp_number(profile), booking_message(profile, booking))


def property_request_link(profile: Profile, request: PropertyRequest) -> str:
    return whatsapp_link(whatsapp_number(profile), property_request_message(profile, request))
