"""Field validation rules for profile and listing editing.

Every validator returns ``(is_valid, error_message)`` and never raises, so
callers can flag a field inline while keeping the user's input untouched.
"""

import re
from typing import Optional
from pydantic import AnyUrl, TypeAdapter, ValidationError

from linknow.models.listing import DESCRIPTION_MAX_LENGTH
from linknow.models.profile import BIO_MAX_LENGTH, SOCIAL_LINK_FIELDS

ValidationResult = tuple[bool, Optional[str]]

SLUG_MIN_LENGTH = 3

PHONE_PATTERN = re.compile(r'^\+?[\d\-()]{8,20}$')
EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')
SLUG_PATTERN = re.compile(r'^[a-z0-9-]+$')

# App routes that would shadow a public profile URL
RESERVED_SLUGS = frozenset({
    "dashboard", "login", "auth", "pricing", "features", "privacy", "terms", "about",
    "contact", "help", "faq", "blog", "careers", "press", "api", "objects",
})

SOCIAL_LINK_LABELS = {
    "instagram_url": "Instagram",
    "linkedin_url": "LinkedIn",
    "tiktok_url": "TikTok",
    "youtube_url": "YouTube",
    "twitter_url": "Twitter",
    "facebook_url": "Facebook",
}

_url_adapter = TypeAdapter(AnyUrl)

VALID: ValidationResult = (True, None)


def normalize_price(value: Optional[str]) -> str:
    """Keep digits only."""
    return re.sub(r'[^0-9]', '', str(value or ""))


def format_price(value: Optional[str]) -> str:
    """Format a price with thousands separators ("1500000" -> "1,500,000")."""
    digits = normalize_price(value)
    if not digits:
        return ""
    return f"{int(digits):,}"


def validate_price(value: Optional[str]) -> ValidationResult:
    """Any input is accepted after normalization; empty means price on request."""
    return VALID


def normalize_phone(value: Optional[str]) -> str:
    """Remove spaces, hyphens and parentheses for comparisons."""
    return re.sub(r'[\s\-()]', '', value or "")


def validate_phone(value: Optional[str], required: bool = False) -> ValidationResult:
    """Digits, spaces, +, - and parentheses; 8-20 characters once whitespace is removed."""
    if not value:
        return (False, "Phone number is required") if required else VALID
    compact = re.sub(r'\s', '', value)
    if PHONE_PATTERN.match(compact):
        return VALID
    return False, "Please enter a valid phone number"


def validate_email(value: Optional[str]) -> ValidationResult:
    if not value:
        return VALID
    if EMAIL_PATTERN.match(value):
        return VALID
    return False, "Please enter a valid email address"


def validate_url(value: Optional[str], label: str = "") -> ValidationResult:
    """Optional absolute URL."""
    if not value:
        return VALID
    try:
        url = _url_adapter.validate_python(value)
    except ValidationError:
        url = None
    if url is not None and url.host:
        return VALID
    return False, f"Please enter a valid {label} URL".replace("  ", " ")


def derive_slug(full_name: Optional[str]) -> str:
    """Suggest a slug from a full name ("Ahmed Ali" -> "ahmed-ali")."""
    slug = re.sub(r'\s+', '-', (full_name or "").strip().lower())
    return re.sub(r'[^a-z0-9-]', '', slug)


def validate_slug(value: Optional[str]) -> ValidationResult:
    if not value or len(value) < SLUG_MIN_LENGTH:
        return False, "Slug too short"
    if not SLUG_PATTERN.match(value):
        return False, "Only lowercase letters, numbers, and dashes"
    if value in RESERVED_SLUGS:
        return False, "This link is reserved"
    return VALID


def validate_text_length(value: Optional[str], max_length: int) -> ValidationResult:
    if value and len(value) > max_length:
        return False, f"Max {max_length} characters"
    return VALID


def validate_bio(value: Optional[str]) -> ValidationResult:
    return validate_text_length(value, BIO_MAX_LENGTH)


def validate_description(value: Optional[str]) -> ValidationResult:
    return validate_text_length(value, DESCRIPTION_MAX_LENGTH)


def validate_full_name(value: Optional[str]) -> ValidationResult:
    if not value or not value.strip():
        return False, "Name is required"
    return VALID


def validate_profile_field(field: str, value) -> ValidationResult:
    """Dispatch to the rule for a profile field; unknown fields are accepted."""
    if field in ("phone_number", "whatsapp_number"):
        return validate_phone(value)
    if field == "email":
        return validate_email(value)
    if field in SOCIAL_LINK_FIELDS:
        return validate_url(value, SOCIAL_LINK_LABELS[field])
    if field == "slug":
        return validate_slug(value)
    if field == "bio":
        return validate_bio(value)
    if field == "full_name":
        return validate_full_name(value)
    return VALID


def validate_listing_field(field: str, value) -> ValidationResult:
    """Dispatch to the rule for a listing field; unknown fields are accepted."""
    if field == "price":
        return validate_price(value)
    if field == "description":
        return validate_description(value)
    return VALID
