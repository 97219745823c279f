"""Dashboard editing session for one profile and its listings.

Structural operations (add, duplicate, remove, move, reorder, image changes,
enumerated fields) persist immediately and roll the local change back when
persistence fails. Free-text fields go through the edit session coordinator
and are committed after the debounce window.
"""

from enum import Enum
from typing import Any, Optional

from linknow.models.listing import EDITABLE_FIELDS, Direction, Listing, PropertyCategory, TransactionType
from linknow.models.profile import AgentType, Profile
from linknow.models.session import SessionContext
from linknow.services import ai_writer, object_storage, properties, profiles
from linknow.services.edit_session import DEFAULT_DEBOUNCE_WINDOW, EditSessionCoordinator, FieldState
from linknow.services.image_slots import MAX_IMAGES, ImageSlots
from linknow.services.listing_collection import MAX_LISTINGS, ListingCollection
from linknow.services.onboarding import OnboardingData, ensure_profile
from linknow.services.validation import normalize_price, validate_listing_field, validate_profile_field
from linknow.utils.errors import LimitExceeded, LinknowError, NotFound, ValidationFailed
from linknow.utils.logging import get_structured_logger, get_correlation_id

logger = get_structured_logger(__name__)

PROFILE_KEY = "profile"

DEBOUNCED_LISTING_FIELDS = ("price", "location", "area", "description", "bedrooms", "bathrooms")
IMMEDIATE_LISTING_FIELDS = {
    "transaction_type": TransactionType,
    "property_type": PropertyCategory,
}

DEBOUNCED_PROFILE_FIELDS = (
    "full_name",
    "phone_number",
    "email",
    "whatsapp_number",
    "bio",
    "location",
    "slug",
    "rera_id",
    "instagram_url",
    "linkedin_url",
    "tiktok_url",
    "youtube_url",
    "twitter_url",
    "facebook_url",
)
IMMEDIATE_PROFILE_FIELDS = ("agent_type", "avatar_url", "avatar_position", "cover_photo_url")

# (data, filename, content_type)
UploadFile = tuple[bytes, Optional[str], str]


def _count(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return -1


class ListingEditor:
    """One user's editing session over their profile and listings."""

    def __init__(
        self,
        session: SessionContext,
        window_seconds: float = DEFAULT_DEBOUNCE_WINDOW,
        listing_limit: int = MAX_LISTINGS,
        image_limit: int = MAX_IMAGES,
    ):
        self.session = session
        self.profile: Optional[Profile] = None
        self.listings = ListingCollection(limit=listing_limit)
        self.image_limit = image_limit
        self.errors: dict[tuple[str, str], str] = {}
        self.coordinator = EditSessionCoordinator(
            self._commit_fields,
            window_seconds=window_seconds,
            on_confirmed=self._on_confirmed,
            on_failure=self._on_failure,
        )

    # Loading

    async def load(self, staging: Optional[OnboardingData] = None) -> Profile:
        """Fetch (or lazily create) the profile and its listings."""
        self.profile = await ensure_profile(self.session, staging)
        records = await properties.list_properties(self.session)
        self.listings = ListingCollection(records, limit=self.listings.limit)

        self.coordinator.seed(PROFILE_KEY, self.profile.model_dump(include=set(DEBOUNCED_PROFILE_FIELDS)))
        for listing in self.listings:
            self._seed_listing(listing)

        logger.info(
            "Editor loaded",
            correlation_id=get_correlation_id(),
            profile_id=self.profile.id,
            listing_count=len(self.listings)
        )
        return self.profile

    def _seed_listing(self, listing: Listing) -> None:
        self.coordinator.seed(listing.id, listing.model_dump(include=set(DEBOUNCED_LISTING_FIELDS)))

    def _require_profile(self) -> Profile:
        if self.profile is None:
            raise NotFound("Profile not loaded")
        return self.profile

    # Listing structure

    async def add_listing(self) -> Listing:
        profile = self._require_profile()
        listing = self.listings.add(profile.id)
        try:
            confirmed = await properties.create_property(
                self.session, listing.model_dump(mode="json", include={"id", *EDITABLE_FIELDS})
            )
        except LinknowError:
            self.listings.remove(listing.id)
            raise
        self.listings.replace(confirmed)
        self._seed_listing(confirmed)
        return confirmed

    async def duplicate_listing(self, listing_id: str) -> Listing:
        """Copy a listing to the front of the list."""
        previous_ids = self.listings.ids()
        copy = self.listings.duplicate(listing_id, self._tracked_values(listing_id))
        try:
            confirmed = await properties.create_property(
                self.session, copy.model_dump(mode="json", include={"id", *EDITABLE_FIELDS})
            )
        except LinknowError:
            self.listings.remove(copy.id)
            raise

        self.listings.replace(confirmed)
        self._seed_listing(confirmed)
        self.listings.reorder([confirmed.id, *previous_ids])
        try:
            await properties.reorder_properties(self.session, self.listings.ids())
        except LinknowError:
            # The copy exists but was stored at the end
            self.listings.reorder([*previous_ids, confirmed.id])
            raise
        return self.listings.get(confirmed.id)

    async def remove_listing(self, listing_id: str) -> None:
        index = self.listings.index_of(listing_id)
        if index is None:
            return
        removed = self.listings.remove(listing_id)
        try:
            await properties.delete_property(self.session, listing_id)
        except NotFound:
            pass
        except LinknowError:
            self.listings.insert(index, removed)
            raise
        self.coordinator.discard(listing_id)
        self._clear_errors(listing_id)

    async def move_listing(self, listing_id: str, direction: Direction) -> bool:
        previous_ids = self.listings.ids()
        if not self.listings.move(listing_id, direction):
            return False
        await self._persist_order(previous_ids)
        return True

    async def reorder_listings(self, listing_ids: list[str]) -> None:
        previous_ids = self.listings.ids()
        self.listings.reorder(listing_ids)
        await self._persist_order(previous_ids)

    async def _persist_order(self, previous_ids: list[str]) -> None:
        try:
            await properties.reorder_properties(self.session, self.listings.ids())
        except LinknowError:
            self.listings.reorder(previous_ids)
            raise

    # Listing fields

    def edit_listing_field(self, listing_id: str, field: str, value: Any) -> FieldState:
        """Keystroke-level edit of a free-text listing field (debounced)."""
        if field not in DEBOUNCED_LISTING_FIELDS:
            raise ValidationFailed(field, f"Not a text field: {field}")
        listing = self.listings.get(listing_id)

        if field == "price":
            value = normalize_price(value)
        valid, message = validate_listing_field(field, value)
        if valid and field in ("bedrooms", "bathrooms"):
            count = _count(value)
            if count < 0:
                valid, message = False, "Must be a whole number"
            else:
                value = count

        setattr(listing, field, value)
        return self._track(listing_id, field, value, valid, message)

    async def set_listing_field(self, listing_id: str, field: str, value: Any) -> Listing:
        """Change an enumerated listing field (transaction type, category) immediately."""
        if field not in IMMEDIATE_LISTING_FIELDS:
            raise ValidationFailed(field, f"Not a selectable field: {field}")
        try:
            value = IMMEDIATE_LISTING_FIELDS[field](value)
        except ValueError:
            raise ValidationFailed(field, f"Invalid {field}: {value}")

        listing = self.listings.get(listing_id)
        previous = getattr(listing, field)
        setattr(listing, field, value)
        try:
            confirmed = await properties.update_property(self.session, listing_id, {field: value.value})
        except LinknowError:
            setattr(listing, field, previous)
            raise
        self._on_confirmed(listing_id, confirmed)
        return self.listings.get(listing_id)

    # Images

    def _slots(self, listing: Listing) -> ImageSlots:
        return ImageSlots(listing.images, limit=self.image_limit)

    async def _persist_images(self, listing: Listing, refs: list[str]) -> list[str]:
        previous = list(listing.images)
        listing.images = refs
        try:
            confirmed = await properties.update_property(self.session, listing.id, {"images": refs})
        except LinknowError:
            listing.images = previous
            raise
        self._on_confirmed(listing.id, confirmed)
        return self.listings.get(listing.id).images

    async def add_image(self, listing_id: str, ref: str) -> list[str]:
        listing = self.listings.get(listing_id)
        slots = self._slots(listing)
        slots.insert(ref)
        return await self._persist_images(listing, slots.refs)

    async def upload_images(self, listing_id: str, files: list[UploadFile]) -> list[str]:
        """Upload as many files as there are free slots; they go first, in upload order."""
        listing = self.listings.get(listing_id)
        slots = self._slots(listing)
        if slots.remaining <= 0:
            raise LimitExceeded("images per property", slots.limit)

        accepted = files[:slots.remaining]
        if len(accepted) < len(files):
            logger.info(
                "Extra images skipped",
                correlation_id=get_correlation_id(),
                listing_id=listing_id,
                skipped_count=len(files) - len(accepted)
            )

        refs = []
        for data, filename, content_type in accepted:
            refs.append(await object_storage.upload_image(self.session, data, filename, content_type))
        for ref in reversed(refs):
            slots.insert(ref)
        return await self._persist_images(listing, slots.refs)

    async def remove_image(self, listing_id: str, index: int) -> list[str]:
        listing = self.listings.get(listing_id)
        slots = self._slots(listing)
        slots.remove(index)
        return await self._persist_images(listing, slots.refs)

    async def swap_image(self, listing_id: str, index: int, direction: Direction) -> bool:
        listing = self.listings.get(listing_id)
        slots = self._slots(listing)
        if not slots.swap(index, direction):
            return False
        await self._persist_images(listing, slots.refs)
        return True

    # Profile fields

    def edit_profile_field(self, field: str, value: Any) -> FieldState:
        """Keystroke-level edit of a profile text field (validated, debounced)."""
        if field not in DEBOUNCED_PROFILE_FIELDS:
            raise ValidationFailed(field, f"Not a text field: {field}")
        profile = self._require_profile()
        valid, message = validate_profile_field(field, value)
        setattr(profile, field, value)
        return self._track(PROFILE_KEY, field, value, valid, message)

    async def set_profile_field(self, field: str, value: Any) -> Profile:
        """Immediate update of a non-text profile field."""
        if field not in IMMEDIATE_PROFILE_FIELDS:
            raise ValidationFailed(field, f"Not a selectable field: {field}")
        profile = self._require_profile()
        if field == "agent_type":
            try:
                value = AgentType(value)
            except ValueError:
                raise ValidationFailed(field, f"Invalid agent type: {value}")

        previous = getattr(profile, field)
        setattr(profile, field, value)
        try:
            confirmed = await profiles.update_own_profile(
                self.session, {field: value.value if isinstance(value, Enum) else value}
            )
        except LinknowError:
            setattr(profile, field, previous)
            raise
        self._on_confirmed(PROFILE_KEY, confirmed)
        return self.profile

    async def set_avatar_position(self, value: int) -> Profile:
        """Vertical crop position of the avatar, 0 (top) to 100 (bottom)."""
        position = _count(value)
        if position < 0 or position > 100:
            raise ValidationFailed("avatar_position", "Must be between 0 and 100")
        return await self.set_profile_field("avatar_position", position)

    async def upload_profile_photo(self, field: str, upload: UploadFile) -> Profile:
        if field not in ("avatar_url", "cover_photo_url"):
            raise ValidationFailed(field, f"Not a photo field: {field}")
        data, filename, content_type = upload
        ref = await object_storage.upload_image(self.session, data, filename, content_type)
        return await self.set_profile_field(field, ref)

    # AI copywriting

    async def write_bio_with_ai(self) -> str:
        profile = self._require_profile()
        bio = await ai_writer.generate_bio(profile.full_name, profile.location, profile.agent_type)
        self.edit_profile_field("bio", bio)
        return bio

    async def write_description_with_ai(self, listing_id: str) -> str:
        listing = self.listings.get(listing_id)
        description = await ai_writer.generate_description(listing.model_dump(mode="json"))
        self.edit_listing_field(listing_id, "description", description)
        return description

    # Debounced commits

    def _track(self, entity_key: str, field: str, value: Any, valid: bool, message: Optional[str]) -> FieldState:
        if not valid:
            # Keep the input, flag it, never send it
            self.errors[(entity_key, field)] = message
            self.coordinator.cancel(entity_key, field)
            return FieldState.DIRTY
        self.errors.pop((entity_key, field), None)
        return self.coordinator.edit(entity_key, field, value)

    async def _commit_fields(self, entity_key: str, updates: dict):
        if entity_key == PROFILE_KEY:
            return await profiles.update_own_profile(self.session, updates)
        return await properties.update_property(self.session, entity_key, updates)

    def _on_confirmed(self, entity_key: str, record) -> None:
        """Replace local state for one entity, keeping still-pending local edits."""
        overlay = self.coordinator.pending_values(entity_key)
        if entity_key == PROFILE_KEY:
            current = self.profile
        elif entity_key in self.listings:
            current = self.listings.get(entity_key)
        else:
            return
        # Flagged inputs were never sent; keep them on screen
        for key, field in self.errors:
            if key == entity_key and field in type(record).model_fields and current is not None:
                overlay[field] = getattr(current, field)
        if entity_key == PROFILE_KEY:
            self.profile = record.model_copy(update=overlay)
            return
        overlay["display_order"] = current.display_order
        self.listings.replace(record.model_copy(update=overlay))

    def _on_failure(self, entity_key: str, field: str, error: LinknowError) -> None:
        if isinstance(error, NotFound) and entity_key != PROFILE_KEY:
            logger.warning(
                "Listing gone on server, pruning local copy",
                correlation_id=get_correlation_id(),
                listing_id=entity_key
            )
            self.listings.remove(entity_key)
            self.coordinator.discard(entity_key)
            self._clear_errors(entity_key)
            return
        self.errors[(entity_key, getattr(error, "field", None) or field)] = (
            error.message if isinstance(error, ValidationFailed) else str(error)
        )

    def _tracked_values(self, entity_key: str) -> dict:
        """Coordinator values for flagged fields; flagged inputs never leave local state."""
        values = {}
        for key, field in self.errors:
            if key != entity_key:
                continue
            value = self.coordinator.local_value(entity_key, field)
            if value is not None:
                values[field] = value
        return values

    def _clear_errors(self, entity_key: str) -> None:
        for key in [key for key in self.errors if key[0] == entity_key]:
            del self.errors[key]

    async def flush(self) -> None:
        await self.coordinator.flush()

    async def close(self, flush: bool = False) -> int:
        """End the session; unsent edits are forfeited unless ``flush`` is set."""
        return await self.coordinator.close(flush=flush)
