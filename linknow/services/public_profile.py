"""Read-only public view of a profile and its listings, resolved by slug."""

from typing import Optional

from pydantic import BaseModel, Field

from linknow.models.listing import Listing, title_for
from linknow.models.profile import Profile, SOCIAL_LINK_FIELDS
from linknow.services import contact_links, supabase_client
from linknow.services.object_storage import resolve_image_url
from linknow.services.validation import SOCIAL_LINK_LABELS, format_price
from linknow.utils.errors import NotFound
from linknow.utils.logging import get_structured_logger, get_correlation_id

logger = get_structured_logger(__name__)

# Columns never exposed on the public page
PRIVATE_FIELDS = {"user_id", "created_at", "updated_at"}


def price_label(price: Optional[str]) -> str:
    formatted = format_price(price)
    return f"AED {formatted}" if formatted else "Price on Request"


class PublicListing(BaseModel):
    """Listing card as shown to visitors."""
    id: str
    title: str
    transaction_type: str
    price_label: str
    location: str = ""
    bedrooms: int = 0
    bathrooms: int = 0
    area: str = ""
    property_type: str
    description: str = ""
    image_urls: list[str] = Field(default_factory=list)
    whatsapp_url: str = ""


class PublicProfileView(BaseModel):
    """Everything the public page renders for one slug."""
    profile: dict
    avatar_url: str = ""
    cover_photo_url: str = ""
    listings: list[PublicListing] = Field(default_factory=list)
    social_links: dict[str, str] = Field(default_factory=dict)
    whatsapp_url: str = ""
    connect_url: str = ""
    email_url: str = ""
    profile_url: str = ""


async def _public_listing(profile: Profile, listing: Listing, number: str) -> PublicListing:
    image_urls = [await resolve_image_url(ref) for ref in listing.images]
    return PublicListing(
        id=listing.id,
        title=title_for(listing.transaction_type),
        transaction_type=listing.transaction_type.value,
        price_label=price_label(listing.price),
        location=listing.location,
        bedrooms=listing.bedrooms,
        bathrooms=listing.bathrooms,
        area=listing.area,
        property_type=listing.property_type.value,
        description=listing.description,
        image_urls=[url for url in image_urls if url],
        whatsapp_url=contact_links.whatsapp_link(
            number, contact_links.property_enquiry_message(profile, listing)
        ),
    )


async def get_public_profile(slug: str) -> PublicProfileView:
    """Resolve a slug (exact, case-sensitive) to its public view."""
    record = await supabase_client.get_profile_by_slug(slug)
    if not record or record.get("slug") != slug:
        raise NotFound(f"Profile not found: {slug}")

    profile = Profile.model_validate(record)
    records = await supabase_client.get_properties_by_profile(profile.id)
    number = contact_links.whatsapp_number(profile)

    listings = [
        await _public_listing(profile, Listing.model_validate(listing_record), number)
        for listing_record in records
    ]

    logger.debug(
        "Public profile resolved",
        correlation_id=get_correlation_id(),
        profile_id=profile.id,
        listing_count=len(listings)
    )

    return PublicProfileView(
        profile=profile.model_dump(mode="json", exclude=PRIVATE_FIELDS),
        avatar_url=await resolve_image_url(profile.avatar_url),
        cover_photo_url=await resolve_image_url(profile.cover_photo_url),
        listings=listings,
        social_links={
            SOCIAL_LINK_LABELS[field]: getattr(profile, field)
            for field in SOCIAL_LINK_FIELDS
            if getattr(profile, field)
        },
        whatsapp_url=contact_links.whatsapp_link(number, contact_links.general_enquiry_message(profile)),
        connect_url=contact_links.whatsapp_link(number, contact_links.connect_message(profile)),
        email_url=contact_links.email_link(profile) if profile.email else "",
        profile_url=contact_links.profile_url(profile.slug),
    )
