"""
Paper registrations: initial submission, camera-ready (final) submission,
author/admin views and admin maintenance.
"""

from __future__ import annotations

import json
import re
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlmodel import Session, select

from config.settings import settings
from confreview.db.models import PaperReview, Registration, User
from confreview.log import get_logger
from confreview.notifications import outbox
from confreview.utils.files import b64, safe_filename, sniff_document
from confreview.workflow import assignment
from confreview.workflow.errors import AuthorizationError, NotFound, ValidationError, WorkflowError

logger = get_logger(__name__)

_MOBILE = re.compile(r"^\d{10}$")


def _now() -> str:
    return datetime.now().isoformat()


def _today() -> str:
    return datetime.now().strftime("%Y-%m-%d")


def _get(session: Session, paper_id: int, message: str = "Registration not found") -> Registration:
    paper = session.get(Registration, paper_id)
    if paper is None:
        raise NotFound(message)
    return paper


def _author_line(authors: List[Dict[str, Any]]) -> str:
    parts = []
    for a in authors:
        name = a.get("name") or ""
        parts.append(f"{name} <{a['email']}>" if a.get("email") else name)
    return ", ".join(p for p in parts if p)


def registration_dict(paper: Registration) -> Dict[str, Any]:
    authors = paper.get_authors()
    return {
        "id": paper.id,
        "userId": paper.user_id,
        "paperTitle": paper.paper_title,
        "authors": authors,
        "email": paper.email,
        "phone": authors[0].get("mobile", "") if authors and isinstance(authors[0], dict) else "",
        "tracks": paper.tracks,
        "country": paper.country,
        "state": paper.state,
        "city": paper.city,
        "status": paper.status,
        "finalSubmissionStatus": paper.final_submission_status,
        "comments": paper.comments,
        "notificationSent": bool(paper.notification_sent),
        "createdAt": paper.created_at,
        "updatedAt": paper.updated_at,
        "abstractBlob": b64(paper.abstract_blob),
        "finalPaperBlob": b64(paper.final_paper_blob),
    }


# ──────────────────────────────────────────────────────────────────────────────
# Submission
# ──────────────────────────────────────────────────────────────────────────────

def validate_authors(authors: Any) -> List[Dict[str, Any]]:
    if not isinstance(authors, list) or not authors:
        raise ValidationError("At least one author is required")
    for author in authors:
        if not isinstance(author, dict):
            raise ValidationError("Each author must be an object with name, email and mobile")
        mobile = str(author.get("mobile") or "")
        if not _MOBILE.match(mobile):
            raise ValidationError(
                f"Invalid mobile number for author {author.get('name')}. Must be exactly 10 digits."
            )
    return authors


def validate_upload(content: Optional[bytes], content_type: Optional[str]) -> bytes:
    if not content:
        raise ValidationError("Abstract or final paper file required")
    if content_type not in settings.upload.allowed_mime_types:
        raise ValidationError("Only PDF, DOC, and DOCX files are allowed")
    max_bytes = settings.upload.max_size_mb * 1024 * 1024
    if len(content) > max_bytes:
        raise ValidationError(f"File exceeds the {settings.upload.max_size_mb} MB limit")
    return content


def _enqueue_admin_notice(session: Session, paper: Registration, submission_type: str) -> List[int]:
    payload = {
        "paper_id": paper.id,
        "paper_title": paper.paper_title,
        "authors": _author_line(paper.get_authors()),
        "submission_type": submission_type,
        "submitted_on": _today(),
    }
    return [
        outbox.enqueue(session, "admin_paper_notification", admin, payload).id
        for admin in settings.mail.admin_recipients
    ]


def register_paper(
    session: Session,
    user_id: int,
    paper_title: str,
    authors: List[Dict[str, Any]],
    abstract: Optional[bytes],
    content_type: Optional[str],
    tracks: str = "",
    country: str = "",
    state: str = "",
    city: str = "",
    assigned_reviewer_id: Optional[int] = None,
) -> Dict[str, Any]:
    """Save a new paper and queue the admin notice and one confirmation per author.

    A reviewer picked at submission time is assigned afterwards; a failed
    assignment is logged and does not fail the registration.
    """
    if not paper_title:
        raise ValidationError("Paper title is required")
    authors = validate_authors(authors)
    blob = validate_upload(abstract, content_type)

    paper = Registration(
        user_id=user_id,
        paper_title=paper_title,
        authors=json.dumps(authors, ensure_ascii=False),
        email=authors[0].get("email") or "",
        abstract_blob=blob,
        tracks=tracks or "",
        country=country or "",
        state=state or "",
        city=city or "",
        final_submission_status="not_submitted",
    )
    session.add(paper)
    session.flush()

    note_ids = _enqueue_admin_notice(session, paper, "Initial Submission")
    author_line = _author_line(authors)
    for author in paper.authors_with_email():
        note_ids.append(outbox.enqueue(session, "apply_confirmation", author["email"], {
            "name": author.get("name") or "Author",
            "paper_title": paper_title,
            "paper_id": paper.id,
            "authors": author_line,
            "created_on": _today(),
        }).id)
    session.commit()
    paper_id = paper.id
    logger.info("[registration] paper=%s user=%s size=%d", paper_id, user_id, len(blob))
    outbox.dispatch_after_commit(note_ids)

    if assigned_reviewer_id:
        try:
            assignment.assign(session, paper_id, int(assigned_reviewer_id))
        except WorkflowError as e:
            logger.error("[registration] assigning reviewer %s to paper %s failed: %s",
                         assigned_reviewer_id, paper_id, e.message)

    return {"message": "Registration successful", "id": paper_id}


def submit_final_paper(
    session: Session,
    paper_id: int,
    requester_id: int,
    requester_role: str,
    content: Optional[bytes],
    content_type: Optional[str],
) -> Dict[str, Any]:
    """Attach the camera-ready file to an existing paper. The paper keeps its reviewers."""
    blob = validate_upload(content, content_type)
    paper = _get(session, paper_id)
    if requester_role != "admin" and paper.user_id != requester_id:
        raise AuthorizationError("Access denied")

    paper.final_paper_blob = blob
    paper.final_submission_status = "submitted"
    paper.updated_at = _now()
    session.add(paper)

    note_ids = _enqueue_admin_notice(session, paper, "Final Submission")
    for author in paper.authors_with_email():
        note_ids.append(outbox.enqueue(session, "final_submission_confirmation", author["email"], {
            "name": author.get("name") or "Author",
            "paper_title": paper.paper_title,
            "paper_id": paper.id,
            "submitted_on": _today(),
        }).id)
    session.commit()
    logger.info("[registration] final paper stored for paper=%s size=%d", paper_id, len(blob))
    outbox.dispatch_after_commit(note_ids)
    return {"message": "Final submission successful", "id": paper_id}


# ──────────────────────────────────────────────────────────────────────────────
# Views
# ──────────────────────────────────────────────────────────────────────────────

def list_registrations(session: Session) -> List[Dict[str, Any]]:
    """Latest row per (owner, title), newest first."""
    latest = (
        select(
            Registration.user_id.label("user_id"),
            Registration.paper_title.label("paper_title"),
            func.max(Registration.updated_at).label("max_updated"),
        )
        .group_by(Registration.user_id, Registration.paper_title)
        .subquery()
    )
    stmt = (
        select(Registration)
        .join(
            latest,
            (Registration.user_id == latest.c.user_id)
            & (Registration.paper_title == latest.c.paper_title)
            & (Registration.updated_at == latest.c.max_updated),
        )
        .order_by(Registration.created_at.desc())
    )
    return [registration_dict(p) for p in session.exec(stmt).all()]


def paper_status(session: Session, user_id: int) -> List[Dict[str, Any]]:
    """The user's papers with every reviewer verdict nested, oldest verdict first."""
    papers = session.exec(
        select(Registration).where(Registration.user_id == user_id).order_by(Registration.created_at.desc())
    ).all()
    if not papers:
        return []
    rows = session.exec(
        select(PaperReview, User.name)
        .outerjoin(User, User.id == PaperReview.reviewer_id)
        .where(PaperReview.paper_id.in_([p.id for p in papers]))
        .order_by(PaperReview.reviewed_at.asc())
    ).all()
    reviews: Dict[int, List[Dict[str, Any]]] = {}
    for review, reviewer_name in rows:
        reviews.setdefault(review.paper_id, []).append({
            "status": review.status,
            "comments": review.comments,
            "reviewedAt": review.reviewed_at,
            "reviewerName": reviewer_name,
        })

    out = []
    for paper in papers:
        item = registration_dict(paper)
        item["reviews"] = reviews.get(paper.id, [])
        out.append(item)
    return out


def download_final_paper(
    session: Session, paper_id: int, requester_id: int, requester_role: str
) -> Tuple[bytes, str, str]:
    """Returns (content, mime type, filename). Admins may fetch any paper, owners their own."""
    paper = _get(session, paper_id, "Paper not found")
    if requester_role != "admin" and paper.user_id != requester_id:
        raise AuthorizationError("Access denied")
    if not paper.final_paper_blob:
        raise NotFound("Final paper not available")
    mime, ext = sniff_document(paper.final_paper_blob)
    return paper.final_paper_blob, mime, safe_filename(paper.paper_title, "final", ext)


# ──────────────────────────────────────────────────────────────────────────────
# Admin maintenance
# ──────────────────────────────────────────────────────────────────────────────

def reset_final_submission(session: Session, paper_id: int) -> Dict[str, Any]:
    """Drop the camera-ready file so the authors can upload again, and tell them."""
    paper = _get(session, paper_id)
    paper.final_paper_blob = None
    paper.final_submission_status = "not_submitted"
    paper.updated_at = _now()
    session.add(paper)

    note_ids = []
    for author in paper.authors_with_email():
        note_ids.append(outbox.enqueue(session, "final_submission_reset", author["email"], {
            "author_name": author.get("name") or "Author",
            "paper_title": paper.paper_title,
            "paper_id": paper.id,
        }).id)
    session.commit()
    logger.info("[registration] final submission reset for paper=%s", paper_id)
    outbox.dispatch_after_commit(note_ids)
    return {"message": "Final submission reset successfully", "id": paper_id}


def delete_registration(session: Session, paper_id: int) -> Dict[str, Any]:
    """Delete the paper; its assignment row and reviews go with it."""
    paper = _get(session, paper_id)
    session.delete(paper)
    session.commit()
    logger.info("[registration] deleted paper=%s", paper_id)
    return {"message": "Registration deleted successfully", "id": paper_id}


def _counts_by(session: Session, column, key: str) -> List[Dict[str, Any]]:
    count = func.count().label("count")
    rows = session.exec(
        select(column, count)
        .where(column.is_not(None), column != "")
        .group_by(column)
        .order_by(count.desc())
    ).all()
    return [{key: value, "count": n} for value, n in rows]


def registration_analytics(session: Session) -> Dict[str, Any]:
    return {
        "countries": _counts_by(session, Registration.country, "country"),
        "states": _counts_by(session, Registration.state, "state"),
    }


def total_registrations(session: Session) -> Dict[str, int]:
    total = session.exec(select(func.count()).select_from(Registration)).one()
    return {"total": int(total)}
