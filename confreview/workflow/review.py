"""
Review status workflow.

Reviewer verdicts (``paper_reviews``) and the paper's own status are
independent: a reviewer's submission never changes ``registrations.status``;
only an admin sets that, and only an admin notifies the authors.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from confreview.db.models import PaperAssignment, PaperReview, Registration, User
from confreview.log import get_logger
from confreview.notifications import outbox
from confreview.observability import metrics, tracer
from confreview.workflow.errors import (
    AlreadyNotified,
    InvalidStatus,
    NotAssigned,
    NotFound,
    ValidationError,
)

logger = get_logger(__name__)

REVIEW_STATUSES = (
    "under_review",
    "accepted",
    "rejected",
    "accepted_with_minor_revision",
    "accepted_with_major_revision",
    "published",
)
# statuses that do not yet carry an admin decision
UNDECIDED_STATUSES = ("submitted", "under_review")
NOTIFY_MODES = ("decision", "aggregate")


def _check_status(status: str) -> None:
    if status not in REVIEW_STATUSES:
        raise InvalidStatus()


def _now() -> str:
    return datetime.now().isoformat()


# ──────────────────────────────────────────────────────────────────────────────
# Reviewer verdicts
# ──────────────────────────────────────────────────────────────────────────────

def _upsert_review(session: Session, paper_id: int, reviewer_id: int, status: str, comments: str | None) -> None:
    review = session.exec(
        select(PaperReview).where(
            PaperReview.paper_id == paper_id,
            PaperReview.reviewer_id == reviewer_id,
        )
    ).first()
    if review is None:
        review = PaperReview(paper_id=paper_id, reviewer_id=reviewer_id)
    review.status = status
    review.comments = comments
    review.reviewed_at = _now()
    session.add(review)
    session.commit()


def submit_review(
    session: Session, paper_id: int, reviewer_id: int, status: str, comments: str | None = None
) -> Dict[str, Any]:
    """Record *reviewer_id*'s verdict on *paper_id*, overwriting any earlier one.

    Raises:
        ValidationError: missing paper id or status.
        InvalidStatus: status outside ``REVIEW_STATUSES``.
        NotAssigned: the reviewer holds no slot on the paper.
    """
    if not paper_id or not status:
        raise ValidationError("Paper ID and status are required")
    _check_status(status)

    with tracer.start_as_current_span("workflow.submit_review", attributes={"paper.id": paper_id}):
        assigned = session.exec(
            select(PaperAssignment.id).where(
                PaperAssignment.paper_id == paper_id,
                or_(PaperAssignment.reviewer1 == reviewer_id, PaperAssignment.reviewer2 == reviewer_id),
            )
        ).first()
        if assigned is None:
            raise NotAssigned()

        try:
            _upsert_review(session, paper_id, reviewer_id, status, comments)
        except IntegrityError:
            # the same reviewer submitted twice at once; the second write becomes an update
            session.rollback()
            _upsert_review(session, paper_id, reviewer_id, status, comments)

    metrics.reviews_total.labels(status=status).inc()
    logger.info("[review] paper=%s reviewer=%s status=%s", paper_id, reviewer_id, status)
    return {
        "message": "Paper status updated successfully",
        "paperId": paper_id,
        "status": status,
        "comments": comments,
    }


# ──────────────────────────────────────────────────────────────────────────────
# Admin decisions
# ──────────────────────────────────────────────────────────────────────────────

def _get_paper(session: Session, paper_id: int, message: str = "Paper not found") -> Registration:
    paper = session.get(Registration, paper_id)
    if paper is None:
        raise NotFound(message)
    return paper


def set_paper_status(session: Session, paper_id: int, status: str) -> Dict[str, Any]:
    """Overwrite the paper's status. Any status may follow any other."""
    if not paper_id or not status:
        raise ValidationError("Registration ID and status are required")
    _check_status(status)

    paper = _get_paper(session, paper_id, "Registration not found")
    paper.status = status
    paper.updated_at = _now()
    session.add(paper)
    session.commit()
    logger.info("[status] paper=%s status=%s", paper_id, status)
    return {"message": "Registration status updated successfully", "id": paper_id, "status": status}


def _aggregate_comments(session: Session, paper_id: int) -> str:
    rows = session.exec(
        select(PaperReview.comments, User.name)
        .join(User, User.id == PaperReview.reviewer_id)
        .where(PaperReview.paper_id == paper_id)
        .order_by(PaperReview.reviewed_at)
    ).all()
    return "\n\n".join(f"Reviewer {name}: {comments or 'No comments'}" for comments, name in rows)


def notify_authors(session: Session, paper_id: int, mode: str = "decision") -> Dict[str, Any]:
    """Email every author of *paper_id* and set ``notification_sent``.

    ``decision`` sends the admin status and paper-level comments and needs a
    decided status. ``aggregate`` sends all reviewer comments and refuses to
    run twice until ``reset_notification`` is called.
    """
    if not paper_id:
        raise ValidationError("Paper ID is required")
    if mode not in NOTIFY_MODES:
        raise ValidationError(f"mode must be one of {', '.join(NOTIFY_MODES)}")

    with tracer.start_as_current_span("workflow.notify_authors", attributes={"paper.id": paper_id, "mode": mode}):
        paper = _get_paper(session, paper_id)

        if mode == "decision":
            if not paper.status or paper.status in UNDECIDED_STATUSES:
                raise ValidationError("No admin decision status found for this paper")
            status = paper.status
            comments = paper.comments or "No comments provided"
            reviewed_by = "Admin Decision"
        else:
            if paper.notification_sent:
                raise AlreadyNotified()
            status = "reviewed"
            comments = _aggregate_comments(session, paper_id)
            reviewed_by = "Reviewers"

        update_date = datetime.now().strftime("%Y-%m-%d")
        note_ids: List[int] = []
        for author in paper.authors_with_email():
            note = outbox.enqueue(session, "paper_status_update", author["email"], {
                "author_name": author.get("name") or "Author",
                "paper_title": paper.paper_title,
                "paper_id": paper.id,
                "update_date": update_date,
                "reviewed_by": reviewed_by,
                "status_text": status.replace("_", " ").upper(),
                "comments": comments,
            })
            note_ids.append(note.id)

        paper.notification_sent = 1
        session.add(paper)
        session.commit()

    metrics.author_notifications_total.labels(mode=mode).inc()
    logger.info("[notify] paper=%s mode=%s emails=%d", paper_id, mode, len(note_ids))
    outbox.dispatch_after_commit(note_ids)
    message = "Status update emails sent successfully" if mode == "decision" else "Notification sent successfully"
    return {"message": message, "paperId": paper_id, "emailsSent": len(note_ids)}


def reset_notification(session: Session, paper_id: int) -> Dict[str, Any]:
    """Clear ``notification_sent`` so the aggregate notification can go out again."""
    paper = _get_paper(session, paper_id)
    paper.notification_sent = 0
    session.add(paper)
    session.commit()
    logger.info("[notify] paper=%s notification flag reset", paper_id)
    return {"message": "Notification flag reset", "paperId": paper_id}
