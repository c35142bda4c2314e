"""
ReviewerSlots: fixed two-slot reviewer set.
"""

import pytest

from confreview.workflow.slots import CAPACITY, ReviewerSlots


def test_empty_slots():
    slots = ReviewerSlots()
    assert len(slots) == 0
    assert list(slots) == [None, None]
    assert slots.free_slot() == 1
    assert not slots.is_full()
    assert slots.occupied() == []


def test_add_fills_lowest_free_slot():
    slots = ReviewerSlots()
    assert slots.add(7) == 1
    assert slots.add(9) == 2
    assert slots.is_full()
    assert slots.free_slot() is None
    assert slots.occupied() == [7, 9]


def test_remove_leaves_hole_without_shifting():
    slots = ReviewerSlots(7, 9)
    assert slots.remove(7) == 1
    assert list(slots) == [None, 9]
    assert slots.slot_of(9) == 2
    # the hole is reused before anything else
    assert slots.add(11) == 1
    assert list(slots) == [11, 9]


def test_replace_keeps_slot_number():
    slots = ReviewerSlots(None, 9)
    assert slots.replace(9, 4) == 2
    assert slots.get(2) == 4
    assert 9 not in slots


def test_contains_and_slot_of():
    slots = ReviewerSlots(3)
    assert slots.contains(3)
    assert 3 in slots
    assert None not in slots
    assert slots.slot_of(5) is None


@pytest.mark.parametrize("op", ["remove", "replace"])
def test_missing_reviewer_raises(op):
    slots = ReviewerSlots(1)
    with pytest.raises(ValueError):
        if op == "remove":
            slots.remove(2)
        else:
            slots.replace(2, 3)


def test_add_rejects_duplicate_and_overflow():
    slots = ReviewerSlots(1, 2)
    with pytest.raises(ValueError):
        slots.add(1)
    with pytest.raises(ValueError):
        slots.add(3)


def test_capacity_is_enforced_on_construction():
    with pytest.raises(ValueError):
        ReviewerSlots(*range(CAPACITY + 1))


def test_from_row_none_means_no_reviewers():
    assert list(ReviewerSlots.from_row(None)) == [None, None]
