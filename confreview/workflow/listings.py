"""
Read-only views over the assignment and review ledgers for the admin and
reviewer dashboards.

Date filters take ``YYYY-MM-DD`` strings and apply to the paper's
``created_at``; ``to_date`` covers the whole day.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import or_
from sqlalchemy.orm import aliased
from sqlmodel import Session, select

from confreview.db.models import PaperAssignment, PaperReview, Registration, User
from confreview.utils.files import b64
from confreview.workflow.errors import ValidationError
from confreview.workflow.slots import ReviewerSlots


@dataclass
class PaperFilters:
    from_date: Optional[str] = None
    to_date: Optional[str] = None
    paper_tracks: List[str] = field(default_factory=list)
    reviewer_tracks: List[str] = field(default_factory=list)


def _parse_day(value: str, name: str) -> date:
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        raise ValidationError(f"{name} must be a YYYY-MM-DD date")


def _paper_conditions(filters: Optional[PaperFilters]) -> list:
    if filters is None:
        return []
    conditions = []
    if filters.from_date:
        conditions.append(Registration.created_at >= _parse_day(filters.from_date, "fromDate").isoformat())
    if filters.to_date:
        next_day = _parse_day(filters.to_date, "toDate") + timedelta(days=1)
        conditions.append(Registration.created_at < next_day.isoformat())
    if filters.paper_tracks:
        conditions.append(Registration.tracks.in_(filters.paper_tracks))
    return conditions


def paper_summary(paper: Registration, include_final: bool = False) -> Dict[str, Any]:
    out = {
        "id": paper.id,
        "userId": paper.user_id,
        "paperTitle": paper.paper_title,
        "authors": paper.get_authors(),
        "email": paper.email,
        "createdAt": paper.created_at,
        "abstractBlob": b64(paper.abstract_blob),
        "track": paper.tracks,
    }
    if include_final:
        out["finalPaperBlob"] = b64(paper.final_paper_blob)
    return out


def _reviewer_detail(user: Optional[User]) -> Optional[str]:
    return f"{user.name} ({user.email})" if user is not None else None


# ──────────────────────────────────────────────────────────────────────────────
# Admin views
# ──────────────────────────────────────────────────────────────────────────────

def list_assignments(session: Session, filters: Optional[PaperFilters] = None) -> List[Dict[str, Any]]:
    """Every assignment row with its paper and reviewers, ordered by paper title."""
    r1 = aliased(User)
    r2 = aliased(User)
    stmt = (
        select(PaperAssignment, Registration, r1, r2)
        .join(Registration, Registration.id == PaperAssignment.paper_id)
        .outerjoin(r1, r1.id == PaperAssignment.reviewer1)
        .outerjoin(r2, r2.id == PaperAssignment.reviewer2)
    )
    conditions = _paper_conditions(filters)
    if filters is not None and filters.reviewer_tracks:
        conditions.append(or_(r1.track.in_(filters.reviewer_tracks), r2.track.in_(filters.reviewer_tracks)))
    if conditions:
        stmt = stmt.where(*conditions)
    stmt = stmt.order_by(Registration.paper_title)

    out: List[Dict[str, Any]] = []
    for row, paper, user1, user2 in session.exec(stmt).all():
        names, details, ids = [], [], []
        for reviewer_id, user in ((row.reviewer1, user1), (row.reviewer2, user2)):
            if reviewer_id is None:
                continue
            names.append(user.name if user is not None else None)
            details.append(_reviewer_detail(user))
            ids.append(reviewer_id)
        out.append({
            "paperId": paper.id,
            "paperTitle": paper.paper_title,
            "track": paper.tracks,
            "reviewerNames": names,
            "reviewerDetails": details,
            "reviewerIds": ids,
        })
    return out


def list_unassigned_papers(session: Session, filters: Optional[PaperFilters] = None) -> List[Dict[str, Any]]:
    """Papers with no assignment row at all, newest first."""
    stmt = (
        select(Registration)
        .outerjoin(PaperAssignment, PaperAssignment.paper_id == Registration.id)
        .where(PaperAssignment.id.is_(None), *_paper_conditions(filters))
        .order_by(Registration.created_at.desc())
    )
    return [paper_summary(p) for p in session.exec(stmt).all()]


def list_papers_available_for_assignment(
    session: Session, filters: Optional[PaperFilters] = None
) -> List[Dict[str, Any]]:
    """Papers holding fewer than two reviewers, with the current reviewer names."""
    r1 = aliased(User)
    r2 = aliased(User)
    stmt = (
        select(Registration, PaperAssignment, r1, r2)
        .outerjoin(PaperAssignment, PaperAssignment.paper_id == Registration.id)
        .outerjoin(r1, r1.id == PaperAssignment.reviewer1)
        .outerjoin(r2, r2.id == PaperAssignment.reviewer2)
        .where(
            or_(
                PaperAssignment.id.is_(None),
                PaperAssignment.reviewer1.is_(None),
                PaperAssignment.reviewer2.is_(None),
            ),
            *_paper_conditions(filters),
        )
        .order_by(Registration.created_at.desc())
    )
    out: List[Dict[str, Any]] = []
    for paper, row, user1, user2 in session.exec(stmt).all():
        item = paper_summary(paper)
        item["assignedReviewers"] = len(ReviewerSlots.from_row(row))
        item["currentReviewers"] = [u.name for u in (user1, user2) if u is not None and u.name]
        out.append(item)
    return out


def _reviews_by_key(session: Session, paper_ids: Sequence[int]) -> Dict[Tuple[int, int], PaperReview]:
    if not paper_ids:
        return {}
    reviews = session.exec(select(PaperReview).where(PaperReview.paper_id.in_(paper_ids))).all()
    return {(r.paper_id, r.reviewer_id): r for r in reviews}


def list_registrations_with_assignments(session: Session) -> List[Dict[str, Any]]:
    """Every paper with its reviewers in slot order and each reviewer's verdict."""
    papers = session.exec(select(Registration).order_by(Registration.created_at.desc())).all()
    if not papers:
        return []
    paper_ids = [p.id for p in papers]
    rows = {
        a.paper_id: a
        for a in session.exec(select(PaperAssignment).where(PaperAssignment.paper_id.in_(paper_ids))).all()
    }
    reviewer_ids = {r for a in rows.values() for r in ReviewerSlots.from_row(a).occupied()}
    users = {
        u.id: u for u in session.exec(select(User).where(User.id.in_(reviewer_ids))).all()
    } if reviewer_ids else {}
    reviews = _reviews_by_key(session, paper_ids)

    out: List[Dict[str, Any]] = []
    for paper in papers:
        row = rows.get(paper.id)
        reviewers = []
        for reviewer_id in ReviewerSlots.from_row(row).occupied():
            user = users.get(reviewer_id)
            review = reviews.get((paper.id, reviewer_id))
            reviewers.append({
                "id": reviewer_id,
                "name": user.name if user is not None else None,
                "assignedAt": row.assigned_at,
                "reviewStatus": review.status if review else None,
                "comments": review.comments if review else None,
                "reviewedAt": review.reviewed_at if review else None,
            })
        item = paper_summary(paper)
        item.pop("track")
        item.update({
            "tracks": paper.tracks,
            "status": paper.status,
            "finalSubmissionStatus": paper.final_submission_status,
            "notificationSent": bool(paper.notification_sent),
            "reviewers": reviewers,
        })
        out.append(item)
    return out


def list_reviewers_with_assignments(session: Session) -> List[Dict[str, Any]]:
    """Each reviewer, by name, with the titles of the papers they hold."""
    reviewers = session.exec(select(User).where(User.role == "reviewer").order_by(User.name)).all()
    held: Dict[int, List[str]] = {}
    stmt = select(PaperAssignment, Registration.paper_title).join(
        Registration, Registration.id == PaperAssignment.paper_id
    )
    for row, title in session.exec(stmt).all():
        for reviewer_id in ReviewerSlots.from_row(row).occupied():
            titles = held.setdefault(reviewer_id, [])
            if title not in titles:
                titles.append(title)
    return [
        {
            "id": u.id,
            "name": u.name,
            "email": u.email,
            "track": u.track,
            "assignedPapers": len(held.get(u.id, [])),
            "paperTitles": held.get(u.id, []),
        }
        for u in reviewers
    ]


# ──────────────────────────────────────────────────────────────────────────────
# Reviewer view
# ──────────────────────────────────────────────────────────────────────────────

def list_assigned_papers(session: Session, reviewer_id: int) -> List[Dict[str, Any]]:
    """Papers holding *reviewer_id* in either slot, with that reviewer's own verdict."""
    stmt = (
        select(Registration, PaperAssignment, PaperReview)
        .join(PaperAssignment, PaperAssignment.paper_id == Registration.id)
        .outerjoin(
            PaperReview,
            (PaperReview.paper_id == Registration.id) & (PaperReview.reviewer_id == reviewer_id),
        )
        .where(or_(PaperAssignment.reviewer1 == reviewer_id, PaperAssignment.reviewer2 == reviewer_id))
        .order_by(Registration.created_at.desc())
    )
    out: List[Dict[str, Any]] = []
    for paper, row, review in session.exec(stmt).all():
        out.append({
            "id": paper.id,
            "paperTitle": paper.paper_title,
            "authors": paper.get_authors(),
            "email": paper.email,
            "status": paper.status,
            "createdAt": paper.created_at,
            "updatedAt": paper.updated_at,
            "abstractBlob": b64(paper.abstract_blob),
            "finalPaperBlob": b64(paper.final_paper_blob),
            "assignedAt": row.assigned_at,
            "reviewStatus": review.status if review else None,
            "comments": review.comments if review else None,
            "reviewedAt": review.reviewed_at if review else None,
        })
    return out
