"""Ordered, capped collection of a profile's listings."""

import os
from typing import Iterable, Iterator, Optional

from linknow.models.listing import Direction, Listing
from linknow.utils.errors import InvalidPermutation, LimitExceeded, NotFound
from linknow.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)

MAX_LISTINGS = int(os.environ.get("MAX_LISTINGS_PER_PROFILE", "30"))


def _order_key(listing: Listing) -> tuple[bool, int]:
    # Unplaced listings sort last; sorted() is stable so ties keep insertion order
    return listing.display_order is None, listing.display_order or 0


class ListingCollection:
    """In-memory ordered list of listings with position-preserving mutations.

    Display order follows list position. ``add`` appends, ``duplicate`` puts
    the copy at the front, ``move`` swaps neighbors and ``reorder`` applies a
    full permutation.
    """

    def __init__(self, listings: Optional[Iterable[Listing]] = None, limit: int = MAX_LISTINGS):
        self.limit = limit
        self._items: list[Listing] = sorted(listings or [], key=_order_key)
        self.expanded_id: Optional[str] = None

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Listing]:
        return iter(list(self._items))

    def __contains__(self, listing_id: str) -> bool:
        return self.index_of(listing_id) is not None

    @property
    def is_full(self) -> bool:
        return len(self._items) >= self.limit

    def ids(self) -> list[str]:
        return [listing.id for listing in self._items]

    def index_of(self, listing_id: str) -> Optional[int]:
        for index, listing in enumerate(self._items):
            if listing.id == listing_id:
                return index
        return None

    def get(self, listing_id: str) -> Listing:
        index = self.index_of(listing_id)
        if index is None:
            raise NotFound(f"Listing not found: {listing_id}")
        return self._items[index]

    def _check_capacity(self) -> None:
        if self.is_full:
            logger.info(
                "Listing limit reached",
                listing_count=len(self._items),
                listing_limit=self.limit
            )
            raise LimitExceeded("properties", self.limit)

    def _next_order(self) -> int:
        placed = [listing.display_order for listing in self._items if listing.display_order is not None]
        return max(placed) + 1 if placed else 0

    def add(self, profile_id: Optional[str] = None) -> Listing:
        """Append a default listing and mark it expanded for editing."""
        self._check_capacity()
        listing = Listing(profile_id=profile_id, display_order=self._next_order())
        self._items.append(listing)
        self.expanded_id = listing.id
        return listing

    def duplicate(self, listing_id: str, overrides: Optional[dict] = None) -> Listing:
        """Clone a listing's editable fields into a new listing at the front."""
        self._check_capacity()
        copy = self.get(listing_id).clone(overrides)
        self._items.insert(0, copy)
        return copy

    def remove(self, listing_id: str) -> Optional[Listing]:
        """Remove a listing; returns None if it was already gone."""
        index = self.index_of(listing_id)
        if index is None:
            return None
        if self.expanded_id == listing_id:
            self.expanded_id = None
        return self._items.pop(index)

    def insert(self, index: int, listing: Listing) -> None:
        """Put a listing back at a position (used to roll back a failed remove)."""
        self._items.insert(index, listing)

    def move(self, listing_id: str, direction: Direction) -> bool:
        """Swap with the neighbor in ``direction``; False when already at that edge."""
        index = self.index_of(listing_id)
        if index is None:
            raise NotFound(f"Listing not found: {listing_id}")
        target = index + Direction(direction).step
        if target < 0 or target >= len(self._items):
            return False
        self._items[index], self._items[target] = self._items[target], self._items[index]
        self._renumber()
        return True

    def reorder(self, listing_ids: list[str]) -> None:
        """Apply a full permutation of the current ids."""
        current = self.ids()
        if len(listing_ids) != len(current) or set(listing_ids) != set(current):
            raise InvalidPermutation(
                f"Expected a permutation of {len(current)} listing ids, got {len(listing_ids)}"
            )
        by_id = {listing.id: listing for listing in self._items}
        self._items = [by_id[listing_id] for listing_id in listing_ids]
        self._renumber()

    def replace(self, listing: Listing) -> bool:
        """Swap in a confirmed copy of one listing, keeping its position."""
        index = self.index_of(listing.id)
        if index is None:
            return False
        self._items[index] = listing
        return True

    def _renumber(self) -> None:
        for position, listing in enumerate(self._items):
            listing.display_order = position
