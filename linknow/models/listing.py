"""Listing (property) models."""

from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, Field, ValidationError, model_validator
from ulid import ULID

from linknow.utils.errors import ValidationFailed

DESCRIPTION_MAX_LENGTH = 120

# Fields copied by duplicate(); everything else is identity or bookkeeping
EDITABLE_FIELDS = (
    "transaction_type",
    "price",
    "location",
    "bedrooms",
    "bathrooms",
    "area",
    "property_type",
    "description",
    "images",
)


def generate_listing_id() -> str:
    """Generate a text-based listing ID (ULID format)."""
    return str(ULID())


class TransactionType(str, Enum):
    """Listing transaction types."""
    RENT = "rent"
    SALE = "sale"


class PropertyCategory(str, Enum):
    """Property categories shown on listing cards."""
    APARTMENT = "apartment"
    VILLA = "villa"
    TOWNHOUSE = "townhouse"
    PENTHOUSE = "penthouse"
    STUDIO = "studio"
    OFFICE = "office"


class Direction(str, Enum):
    """Neighbor direction for move/swap operations."""
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"

    @property
    def step(self) -> int:
        return -1 if self in (Direction.UP, Direction.LEFT) else 1


def title_for(transaction_type: TransactionType) -> str:
    """Stored title for a transaction type."""
    return "For Rent" if transaction_type == TransactionType.RENT else "For Sale"


class Listing(BaseModel):
    """Property listing owned by a profile."""
    id: str = Field(default_factory=generate_listing_id, description="Listing ID (ULID)")
    profile_id: Optional[str] = Field(None, description="Owning profile ID")
    transaction_type: TransactionType = Field(default=TransactionType.SALE, description="rent or sale")
    price: str = Field(default="", description="Digits only; empty means price on request")
    location: str = Field(default="", description="Community / area name")
    bedrooms: int = Field(default=0, ge=0, description="Bedroom count")
    bathrooms: int = Field(default=0, ge=0, description="Bathroom count")
    area: str = Field(default="", description="Size, e.g. 1200")
    property_type: PropertyCategory = Field(default=PropertyCategory.APARTMENT, description="Category")
    description: str = Field(default="", max_length=DESCRIPTION_MAX_LENGTH)
    images: list[str] = Field(default_factory=list, description="Image references, newest first")
    display_order: Optional[int] = Field(None, description="Position; None means needs placement")
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _from_storage_shape(cls, data: Any) -> Any:
        """Accept rows from the properties table (title, image_url, nulls)."""
        if not isinstance(data, dict):
            return data
        data = {key: value for key, value in data.items() if value is not None}
        title = data.pop("title", None)
        if "transaction_type" not in data and title is not None:
            data["transaction_type"] = TransactionType.RENT if "rent" in title.lower() else TransactionType.SALE
        image_url = data.pop("image_url", None)
        if not data.get("images") and image_url:
            data["images"] = [image_url]
        return data

    def clone(self, overrides: Optional[dict] = None) -> "Listing":
        """Copy editable fields into a new, unplaced listing with a fresh identity.

        ``overrides`` replaces field values first (e.g. confirmed values for
        inputs flagged invalid).
        """
        fields = self.model_dump(include=set(EDITABLE_FIELDS), warnings=False)
        fields.update(overrides or {})
        try:
            return Listing(profile_id=self.profile_id, **fields)
        except ValidationError as e:
            error = e.errors()[0]
            field = str(error["loc"][0]) if error["loc"] else "listing"
            raise ValidationFailed(field, error["msg"])

    def to_record(self) -> dict:
        """Row for the properties table."""
        return {
            "id": self.id,
            "title": title_for(self.transaction_type),
            "price": self.price,
            "location": self.location,
            "bedrooms": self.bedrooms,
            "bathrooms": self.bathrooms,
            "area": self.area,
            "property_type": self.property_type.value,
            "image_url": self.images[0] if self.images else "",
            "images": list(self.images),
            "description": self.description,
            "display_order": self.display_order if self.display_order is not None else 0,
        }


def to_storage_updates(updates: dict) -> dict:
    """Translate listing field updates into properties table columns."""
    record = {}
    for field, value in updates.items():
        if field == "transaction_type":
            record["title"] = title_for(TransactionType(value))
        elif field == "images":
            record["images"] = list(value)
            record["image_url"] = value[0] if value else ""
        elif isinstance(value, Enum):
            record[field] = value.value
        else:
            record[field] = value
    return record
