"""Fixed-capacity reviewer set backing the two slot columns of an assignment."""

from __future__ import annotations

from typing import Iterator, Optional

CAPACITY = 2


class ReviewerSlots:
    """
    Ordered reviewer slots (1-based). Empty slots hold ``None``; removing a
    reviewer leaves a hole rather than shifting the other one down.
    """

    __slots__ = ("_slots",)

    def __init__(self, *reviewers: Optional[int]):
        if len(reviewers) > CAPACITY:
            raise ValueError(f"at most {CAPACITY} reviewers per paper")
        self._slots: list[Optional[int]] = list(reviewers) + [None] * (CAPACITY - len(reviewers))

    @classmethod
    def from_row(cls, row) -> "ReviewerSlots":
        """Build from a ``PaperAssignment`` row; ``None`` means no reviewers yet."""
        if row is None:
            return cls()
        return cls(row.reviewer1, row.reviewer2)

    def __iter__(self) -> Iterator[Optional[int]]:
        return iter(self._slots)

    def __len__(self) -> int:
        return sum(1 for r in self._slots if r is not None)

    def __contains__(self, reviewer_id: object) -> bool:
        return reviewer_id is not None and reviewer_id in self._slots

    def __repr__(self) -> str:
        return f"ReviewerSlots({self._slots[0]!r}, {self._slots[1]!r})"

    def contains(self, reviewer_id: int) -> bool:
        return reviewer_id in self

    def occupied(self) -> list[int]:
        """Reviewer ids in slot order."""
        return [r for r in self._slots if r is not None]

    def is_full(self) -> bool:
        return len(self) == CAPACITY

    def free_slot(self) -> Optional[int]:
        """Lowest empty slot number, or ``None`` when full."""
        for idx, reviewer in enumerate(self._slots, start=1):
            if reviewer is None:
                return idx
        return None

    def slot_of(self, reviewer_id: int) -> Optional[int]:
        for idx, reviewer in enumerate(self._slots, start=1):
            if reviewer is not None and reviewer == reviewer_id:
                return idx
        return None

    def get(self, slot: int) -> Optional[int]:
        return self._slots[slot - 1]

    def add(self, reviewer_id: int) -> int:
        """Put the reviewer in the lowest free slot and return its number."""
        if reviewer_id in self:
            raise ValueError(f"reviewer {reviewer_id} already holds a slot")
        slot = self.free_slot()
        if slot is None:
            raise ValueError("no free slot")
        self._slots[slot - 1] = reviewer_id
        return slot

    def remove(self, reviewer_id: int) -> int:
        slot = self.slot_of(reviewer_id)
        if slot is None:
            raise ValueError(f"reviewer {reviewer_id} holds no slot")
        self._slots[slot - 1] = None
        return slot

    def replace(self, reviewer_id: int, new_reviewer_id: int) -> int:
        """Swap *new_reviewer_id* into the slot held by *reviewer_id*."""
        slot = self.slot_of(reviewer_id)
        if slot is None:
            raise ValueError(f"reviewer {reviewer_id} holds no slot")
        self._slots[slot - 1] = new_reviewer_id
        return slot
