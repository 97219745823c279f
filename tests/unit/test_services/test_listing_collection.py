"""Tests for the listing collection."""

import pytest

from linknow.models.listing import Direction, Listing
from linknow.services.listing_collection import ListingCollection
from linknow.utils.errors import InvalidPermutation, LimitExceeded, NotFound
from tests.utils.assertions import assert_same_listing_fields, assert_strictly_ordered


def _collection(size: int, limit: int = 30) -> ListingCollection:
    return ListingCollection([Listing(display_order=i) for i in range(size)], limit=limit)


@pytest.mark.unit
def test_thirty_adds_then_limit():
    """30 adds succeed; the 31st raises and leaves 30."""
    collection = ListingCollection()
    for _ in range(30):
        collection.add("profile-1")

    with pytest.raises(LimitExceeded) as exc_info:
        collection.add("profile-1")

    assert len(collection) == 30
    assert exc_info.value.limit == 30
    assert str(exc_info.value) == "Max 30 properties allowed."


@pytest.mark.unit
def test_add_appends_and_expands():
    collection = _collection(2)

    listing = collection.add("profile-1")

    assert collection.ids()[-1] == listing.id
    assert listing.display_order == 2
    assert collection.expanded_id == listing.id


@pytest.mark.unit
def test_constructor_sorts_unplaced_last():
    placed = Listing(display_order=1)
    first = Listing(display_order=0)
    unplaced = Listing()

    collection = ListingCollection([unplaced, placed, first])

    assert collection.ids() == [first.id, placed.id, unplaced.id]


@pytest.mark.unit
def test_duplicate_puts_clone_first():
    collection = _collection(3)
    source = list(collection)[1]
    source.images = ["a", "b", "c"]
    source.price = "1500000"

    copy = collection.duplicate(source.id)

    assert collection.ids()[0] == copy.id
    assert copy.id != source.id
    assert copy.display_order is None
    assert_same_listing_fields(copy, source)
    assert source.images == ["a", "b", "c"]
    assert len(collection) == 4


@pytest.mark.unit
def test_duplicate_respects_limit():
    collection = _collection(30)

    with pytest.raises(LimitExceeded):
        collection.duplicate(collection.ids()[0])
    assert len(collection) == 30


@pytest.mark.unit
def test_remove_is_idempotent():
    collection = _collection(2)
    listing_id = collection.ids()[0]

    assert collection.remove(listing_id).id == listing_id
    assert collection.remove(listing_id) is None
    assert len(collection) == 1


@pytest.mark.unit
def test_move_at_boundaries_is_noop():
    collection = _collection(3)
    before = collection.ids()

    assert collection.move(before[0], Direction.UP) is False
    assert collection.move(before[-1], Direction.DOWN) is False
    assert collection.ids() == before


@pytest.mark.unit
def test_move_swaps_neighbors():
    collection = _collection(3)
    a, b, c = collection.ids()

    assert collection.move(b, Direction.UP) is True

    assert collection.ids() == [b, a, c]
    assert_strictly_ordered(collection)


@pytest.mark.unit
def test_move_unknown_id():
    with pytest.raises(NotFound):
        _collection(1).move("missing", Direction.DOWN)


@pytest.mark.unit
def test_reorder_is_idempotent():
    collection = _collection(4)
    new_order = list(reversed(collection.ids()))

    collection.reorder(new_order)
    first = [(listing.id, listing.display_order) for listing in collection]
    collection.reorder(new_order)

    assert collection.ids() == new_order
    assert [(listing.id, listing.display_order) for listing in collection] == first
    assert [listing.display_order for listing in collection] == [0, 1, 2, 3]


@pytest.mark.unit
@pytest.mark.parametrize("mutate", [
    lambda ids: ids[:-1],
    lambda ids: ids + ["extra"],
    lambda ids: ids[:-1] + [ids[0]],
])
def test_reorder_rejects_non_permutations(mutate):
    collection = _collection(3)
    before = collection.ids()

    with pytest.raises(InvalidPermutation):
        collection.reorder(mutate(list(before)))
    assert collection.ids() == before


@pytest.mark.unit
def test_replace_keeps_position():
    collection = _collection(3)
    target_id = collection.ids()[1]
    updated = Listing(id=target_id, price="99", display_order=1)

    assert collection.replace(updated) is True
    assert collection.get(target_id).price == "99"
    assert collection.index_of(target_id) == 1
    assert collection.replace(Listing()) is False
