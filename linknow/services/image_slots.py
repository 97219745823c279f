"""Capped, ordered image references for one listing."""

import os
from typing import Iterable, Optional

from linknow.models.listing import Direction
from linknow.utils.errors import LimitExceeded, NotFound

MAX_IMAGES = int(os.environ.get("MAX_IMAGES_PER_LISTING", "5"))


class ImageSlots:
    """Newest-first list of at most ``limit`` image references.

    References are opaque storage paths; this class never looks inside them.
    """

    def __init__(self, refs: Optional[Iterable[str]] = None, limit: int = MAX_IMAGES):
        self.limit = limit
        self._refs = list(refs or [])[:limit]

    def __len__(self) -> int:
        return len(self._refs)

    @property
    def refs(self) -> list[str]:
        return list(self._refs)

    @property
    def remaining(self) -> int:
        return self.limit - len(self._refs)

    def insert(self, ref: str) -> list[str]:
        """Prepend a reference."""
        if self.remaining <= 0:
            raise LimitExceeded("images per property", self.limit)
        self._refs.insert(0, ref)
        return self.refs

    def remove(self, index: int) -> str:
        """Remove by position; later entries shift left."""
        if index < 0 or index >= len(self._refs):
            raise NotFound(f"No image at position {index}")
        return self._refs.pop(index)

    def swap(self, index: int, direction: Direction) -> bool:
        """Exchange with the adjacent slot; False at either boundary."""
        if index < 0 or index >= len(self._refs):
            raise NotFound(f"No image at position {index}")
        target = index + Direction(direction).step
        if target < 0 or target >= len(self._refs):
            return False
        self._refs[index], self._refs[target] = self._refs[target], self._refs[index]
        return True
