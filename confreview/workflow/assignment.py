"""
Reviewer assignment: put a reviewer into one of a paper's two slots, take
them out again, or swap them for someone else.

Every operation holds a per-paper in-process lock and runs in a single
transaction. Slot writes are conditional updates (``... WHERE reviewerN IS
NULL``) so a second process racing on the same row cannot overwrite a slot
it did not see as empty; a concurrent first insert trips the unique key on
``paper_id`` and the whole transaction is retried once against the new row.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Any, Dict, Iterator, List, Optional, Tuple

from sqlalchemy import or_, update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from config.settings import settings
from confreview.db.models import PaperAssignment, Registration, User
from confreview.log import get_logger
from confreview.notifications import outbox
from confreview.observability import metrics, tracer
from confreview.workflow.errors import (
    AlreadyAssigned,
    NoAvailableSlot,
    NotFound,
    ValidationError,
    WorkflowError,
)
from confreview.workflow.slots import CAPACITY, ReviewerSlots

logger = get_logger(__name__)

_SLOT_COLUMNS = {1: "reviewer1", 2: "reviewer2"}
_INSERT_RETRIES = 2


class _PaperLocks:
    """One mutex per paper id, kept only while some caller holds or waits on it."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[int, List] = {}  # paper_id -> [lock, users]

    @contextmanager
    def hold(self, paper_id: int) -> Iterator[None]:
        with self._guard:
            entry = self._locks.get(paper_id)
            if entry is None:
                entry = self._locks[paper_id] = [threading.Lock(), 0]
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[paper_id]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


_paper_locks = _PaperLocks()


def _load_row(session: Session, paper_id: int) -> Optional[PaperAssignment]:
    return session.exec(
        select(PaperAssignment).where(PaperAssignment.paper_id == paper_id)
    ).first()


def _conditional_fill(session: Session, paper_id: int, slot: int, reviewer_id: int) -> bool:
    """Write *reviewer_id* into *slot* only if it is still empty and the other slot is not already theirs."""
    column = _SLOT_COLUMNS[slot]
    other = _SLOT_COLUMNS[CAPACITY + 1 - slot]
    other_col = getattr(PaperAssignment, other)
    stmt = (
        update(PaperAssignment)
        .where(
            PaperAssignment.paper_id == paper_id,
            getattr(PaperAssignment, column).is_(None),
            or_(other_col.is_(None), other_col != reviewer_id),
        )
        .values({column: reviewer_id})
        .execution_options(synchronize_session=False)
    )
    return session.exec(stmt).rowcount == 1


def _conditional_swap(
    session: Session, paper_id: int, slot: int, current: int, replacement: Optional[int]
) -> bool:
    """Overwrite *slot* only while it still holds *current*."""
    column = _SLOT_COLUMNS[slot]
    stmt = (
        update(PaperAssignment)
        .where(PaperAssignment.paper_id == paper_id, getattr(PaperAssignment, column) == current)
        .values({column: replacement})
        .execution_options(synchronize_session=False)
    )
    return session.exec(stmt).rowcount == 1


def _assignment_payload(reviewer: User, paper: Registration) -> Dict[str, Any]:
    assigned = datetime.now()
    deadline = assigned + timedelta(days=settings.notifications.review_deadline_days)
    return {
        "reviewer_name": reviewer.name,
        "paper_title": paper.paper_title,
        "paper_id": paper.id,
        "assigned_date": assigned.strftime("%Y-%m-%d"),
        "deadline": deadline.strftime("%Y-%m-%d"),
    }


def _assign_tx(session: Session, paper_id: int, reviewer_id: int) -> Tuple[Dict[str, Any], List[int]]:
    row = _load_row(session, paper_id)
    slots = ReviewerSlots.from_row(row)
    if reviewer_id in slots:
        raise AlreadyAssigned()
    if slots.is_full():
        raise NoAvailableSlot()

    paper = session.get(Registration, paper_id)
    reviewer = session.get(User, reviewer_id)
    if paper is None or reviewer is None or reviewer.role != "reviewer":
        raise NotFound("Reviewer or paper not found")

    if row is None:
        row = PaperAssignment(paper_id=paper_id, reviewer1=reviewer_id)
        session.add(row)
        session.flush()
        slot = 1
    else:
        slot = None
        for candidate in range(1, CAPACITY + 1):
            if slots.get(candidate) is None and _conditional_fill(session, paper_id, candidate, reviewer_id):
                slot = candidate
                break
        if slot is None:
            # lost a race between the read and the write
            session.refresh(row)
            if reviewer_id in ReviewerSlots.from_row(row):
                raise AlreadyAssigned()
            raise NoAvailableSlot()

    # forced back even if an admin decision was already recorded
    paper.status = "under_review"
    paper.updated_at = datetime.now().isoformat()
    session.add(paper)

    note = outbox.enqueue(session, "reviewer_assignment", reviewer.email, _assignment_payload(reviewer, paper))
    session.commit()

    result = {
        "message": "Reviewer assigned successfully",
        "assignmentId": row.id,
        "paperId": paper_id,
        "reviewerId": reviewer_id,
        "slot": slot,
        "emailSent": True,
    }
    return result, [note.id]


def assign(session: Session, paper_id: int, reviewer_id: int) -> Dict[str, Any]:
    """Put *reviewer_id* into the lowest free slot of *paper_id* and mark the paper under review.

    Raises:
        ValidationError: missing ids.
        AlreadyAssigned: the reviewer already holds a slot on this paper.
        NoAvailableSlot: both slots are taken; nothing is written.
        NotFound: the paper does not exist, or the user is not a reviewer.
    """
    if not paper_id or not reviewer_id:
        raise ValidationError("paperId and reviewerId are required")

    with _paper_locks.hold(paper_id), tracer.start_as_current_span(
        "workflow.assign", attributes={"paper.id": paper_id, "reviewer.id": reviewer_id}
    ):
        for attempt in range(1, _INSERT_RETRIES + 1):
            try:
                result, note_ids = _assign_tx(session, paper_id, reviewer_id)
                break
            except IntegrityError:
                session.rollback()
                if attempt == _INSERT_RETRIES:
                    raise
                logger.info("[assign] concurrent insert for paper %s, retrying", paper_id)
            except WorkflowError as e:
                session.rollback()
                metrics.assignments_total.labels(operation="assign", result=type(e).__name__).inc()
                raise
            except Exception:
                session.rollback()
                raise

    metrics.assignments_total.labels(operation="assign", result="ok").inc()
    logger.info("[assign] paper=%s reviewer=%s slot=%s", paper_id, reviewer_id, result["slot"])
    outbox.dispatch_after_commit(note_ids)
    return result


def _locate(session: Session, paper_id: int, reviewer_id: int) -> int:
    row = _load_row(session, paper_id)
    if row is None:
        raise NotFound("Assignment not found")
    slot = ReviewerSlots.from_row(row).slot_of(reviewer_id)
    if slot is None:
        raise NotFound("Reviewer not assigned to this paper")
    return slot


def unassign(session: Session, paper_id: int, reviewer_id: int) -> Dict[str, Any]:
    """Empty the slot holding *reviewer_id*. The other slot and the paper status stay as they are."""
    if not paper_id or not reviewer_id:
        raise ValidationError("Paper ID and reviewer ID are required")

    with _paper_locks.hold(paper_id), tracer.start_as_current_span("workflow.unassign"):
        try:
            slot = _locate(session, paper_id, reviewer_id)
            if not _conditional_swap(session, paper_id, slot, reviewer_id, None):
                raise NotFound("Reviewer not assigned to this paper")
            session.commit()
        except WorkflowError as e:
            session.rollback()
            metrics.assignments_total.labels(operation="unassign", result=type(e).__name__).inc()
            raise
        except Exception:
            session.rollback()
            raise

    metrics.assignments_total.labels(operation="unassign", result="ok").inc()
    logger.info("[unassign] paper=%s reviewer=%s slot=%s", paper_id, reviewer_id, slot)
    return {
        "message": "Assignment deleted successfully",
        "paperId": paper_id,
        "reviewerId": reviewer_id,
        "slot": slot,
    }


def reassign(session: Session, paper_id: int, reviewer_id: int, new_reviewer_id: int) -> Dict[str, Any]:
    """Write *new_reviewer_id* into the slot currently held by *reviewer_id*.

    The new reviewer is not checked against the other slot.
    """
    if not paper_id or not reviewer_id or not new_reviewer_id:
        raise ValidationError("Paper ID, current reviewer ID, and new reviewer ID are required")

    with _paper_locks.hold(paper_id), tracer.start_as_current_span("workflow.reassign"):
        try:
            slot = _locate(session, paper_id, reviewer_id)
            replacement = session.get(User, new_reviewer_id)
            if replacement is None or replacement.role != "reviewer":
                raise NotFound("Reviewer not found")
            if not _conditional_swap(session, paper_id, slot, reviewer_id, new_reviewer_id):
                raise NotFound("Reviewer not assigned to this paper")
            session.commit()
        except WorkflowError as e:
            session.rollback()
            metrics.assignments_total.labels(operation="reassign", result=type(e).__name__).inc()
            raise
        except Exception:
            session.rollback()
            raise

    metrics.assignments_total.labels(operation="reassign", result="ok").inc()
    logger.info("[reassign] paper=%s slot=%s %s -> %s", paper_id, slot, reviewer_id, new_reviewer_id)
    return {
        "message": "Assignment updated successfully",
        "paperId": paper_id,
        "oldReviewerId": reviewer_id,
        "newReviewerId": new_reviewer_id,
        "slot": slot,
    }
