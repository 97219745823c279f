"""Property service - the caller's listings, with ownership checks and the listing cap."""

from typing import Optional

from pydantic import ValidationError

from linknow.models.listing import EDITABLE_FIELDS, Listing, to_storage_updates
from linknow.models.profile import Profile
from linknow.models.session import SessionContext
from linknow.services import supabase_client
from linknow.services.image_slots import MAX_IMAGES
from linknow.services.listing_collection import MAX_LISTINGS
from linknow.services.profiles import get_own_profile, validation_failed_from
from linknow.services.validation import normalize_price, validate_listing_field
from linknow.utils.errors import Forbidden, InvalidPermutation, LimitExceeded, NotFound, ValidationFailed
from linknow.utils.logging import get_structured_logger, get_correlation_id

logger = get_structured_logger(__name__)


def _clean_fields(fields: dict) -> dict:
    """Keep editable fields, normalize price and check per-field rules."""
    cleaned = {}
    for field, value in fields.items():
        if field not in EDITABLE_FIELDS:
            raise ValidationFailed(field, f"Unknown property field: {field}")
        if field == "price":
            value = normalize_price(value)
        valid, message = validate_listing_field(field, value)
        if not valid:
            raise ValidationFailed(field, message)
        cleaned[field] = value
    if len(cleaned.get("images") or []) > MAX_IMAGES:
        raise LimitExceeded("images per property", MAX_IMAGES)
    return cleaned


async def _owned_property(profile: Profile, property_id: str) -> Listing:
    record = await supabase_client.get_property_by_id(property_id)
    if not record:
        raise NotFound(f"Property not found: {property_id}")
    if record.get("profile_id") != profile.id:
        logger.warning(
            "Property ownership mismatch",
            correlation_id=get_correlation_id(),
            property_id=property_id,
            profile_id=profile.id
        )
        raise Forbidden("Not authorized")
    return Listing.model_validate(record)


async def list_properties(session: SessionContext) -> list[Listing]:
    """The caller's listings in display order."""
    profile = await get_own_profile(session)
    records = await supabase_client.get_properties_by_profile(profile.id)
    return [Listing.model_validate(record) for record in records]


async def create_property(session: SessionContext, fields: Optional[dict] = None) -> Listing:
    """Create a listing at the end of the caller's list.

    ``fields`` may carry a caller-generated ``id`` so the listing has its final
    identity before the call returns.
    """
    fields = dict(fields or {})
    profile = await get_own_profile(session)
    listing_id = fields.pop("id", None)
    for key in ("profile_id", "display_order", "created_at", "updated_at"):
        fields.pop(key, None)
    cleaned = _clean_fields(fields)

    existing = await supabase_client.get_properties_by_profile(profile.id)
    if len(existing) >= MAX_LISTINGS:
        raise LimitExceeded("properties", MAX_LISTINGS)

    orders = [record.get("display_order") or 0 for record in existing]
    try:
        listing = Listing(
            profile_id=profile.id,
            display_order=max(orders) + 1 if orders else 0,
            **({"id": listing_id} if listing_id else {}),
            **cleaned
        )
    except ValidationError as e:
        raise validation_failed_from(e)

    record = await supabase_client.create_property(profile.id, listing.to_record())
    logger.info(
        "Property created",
        correlation_id=get_correlation_id(),
        profile_id=profile.id,
        property_id=listing.id,
        display_order=listing.display_order
    )
    return Listing.model_validate(record)


async def update_property(session: SessionContext, property_id: str, updates: dict) -> Listing:
    """Partially update one of the caller's listings."""
    profile = await get_own_profile(session)
    current = await _owned_property(profile, property_id)
    cleaned = _clean_fields(updates)
    if not cleaned:
        return current

    try:
        Listing.model_validate({**current.model_dump(), **cleaned})
    except ValidationError as e:
        raise validation_failed_from(e)

    record = await supabase_client.update_property(property_id, to_storage_updates(cleaned))
    return Listing.model_validate(record)


async def delete_property(session: SessionContext, property_id: str) -> None:
    """Delete one of the caller's listings."""
    profile = await get_own_profile(session)
    await _owned_property(profile, property_id)
    await supabase_client.delete_property(property_id)
    logger.info(
        "Property deleted",
        correlation_id=get_correlation_id(),
        profile_id=profile.id,
        property_id=property_id
    )


async def reorder_properties(session: SessionContext, property_ids: list[str]) -> list[Listing]:
    """Assign display order by position; the ids must be exactly the current set."""
    profile = await get_own_profile(session)
    records = await supabase_client.get_properties_by_profile(profile.id)
    current = [record["id"] for record in records]
    if len(property_ids) != len(current) or set(property_ids) != set(current):
        raise InvalidPermutation(
            f"Expected a permutation of {len(current)} property ids, got {len(property_ids)}"
        )

    await supabase_client.reorder_properties(profile.id, property_ids)

    by_id = {record["id"]: record for record in records}
    listings = []
    for position, property_id in enumerate(property_ids):
        listings.append(Listing.model_validate({**by_id[property_id], "display_order": position}))
    return listings
