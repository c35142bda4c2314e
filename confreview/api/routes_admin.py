"""
管理员 API：审稿人账号管理、论文状态与作者通知、注册记录维护与统计。
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from confreview.api.routes_auth import require_admin
from confreview.api.schemas import CreateReviewerRequest, PaperStatusRequest, UpdateReviewerRequest
from confreview.db import get_session
from confreview.stores import registrations, users
from confreview.workflow import review

router = APIRouter(prefix="/admin", tags=["admin"])


# ── Reviewer accounts ────────────────────────────────────────────────────────

@router.post("/reviewers", status_code=201)
def create_reviewer(
    body: CreateReviewerRequest,
    _admin: Dict[str, Any] = Depends(require_admin),
    session: Session = Depends(get_session),
) -> dict:
    """创建审稿人账号，并通过 outbox 发送登录凭据邮件。"""
    return users.create_reviewer(session, body.name, body.email, body.track, body.password)


@router.get("/reviewers")
def list_reviewers(
    _admin: Dict[str, Any] = Depends(require_admin),
    session: Session = Depends(get_session),
) -> list:
    return users.list_reviewers(session)


@router.put("/reviewers/{reviewer_id}")
def update_reviewer(
    reviewer_id: int,
    body: UpdateReviewerRequest,
    _admin: Dict[str, Any] = Depends(require_admin),
    session: Session = Depends(get_session),
) -> dict:
    return users.update_reviewer(session, reviewer_id, body.name, body.email, body.track)


@router.delete("/reviewers/{reviewer_id}")
def delete_reviewer(
    reviewer_id: int,
    _admin: Dict[str, Any] = Depends(require_admin),
    session: Session = Depends(get_session),
) -> dict:
    return users.delete_reviewer(session, reviewer_id)


# ── Paper decisions ──────────────────────────────────────────────────────────

@router.put("/registrations/{paper_id}/status")
def set_paper_status(
    paper_id: int,
    body: PaperStatusRequest,
    _admin: Dict[str, Any] = Depends(require_admin),
    session: Session = Depends(get_session),
) -> dict:
    return review.set_paper_status(session, paper_id, body.status)


@router.post("/registrations/{paper_id}/notify")
def notify_authors(
    paper_id: int,
    mode: str = Query("decision", description="decision | aggregate"),
    _admin: Dict[str, Any] = Depends(require_admin),
    session: Session = Depends(get_session),
) -> dict:
    """向论文全部作者发送状态邮件。"""
    return review.notify_authors(session, paper_id, mode)


@router.post("/registrations/{paper_id}/reset-notification")
def reset_notification(
    paper_id: int,
    _admin: Dict[str, Any] = Depends(require_admin),
    session: Session = Depends(get_session),
) -> dict:
    return review.reset_notification(session, paper_id)


# ── Registration maintenance ─────────────────────────────────────────────────

@router.put("/registrations/{paper_id}/reset-final-submission")
def reset_final_submission(
    paper_id: int,
    _admin: Dict[str, Any] = Depends(require_admin),
    session: Session = Depends(get_session),
) -> dict:
    return registrations.reset_final_submission(session, paper_id)


@router.get("/registrations/analytics")
def registration_analytics(
    _admin: Dict[str, Any] = Depends(require_admin),
    session: Session = Depends(get_session),
) -> dict:
    return registrations.registration_analytics(session)


@router.get("/registrations/total")
def total_registrations(
    _admin: Dict[str, Any] = Depends(require_admin),
    session: Session = Depends(get_session),
) -> dict:
    return registrations.total_registrations(session)


@router.delete("/registrations/{paper_id}")
def delete_registration(
    paper_id: int,
    _admin: Dict[str, Any] = Depends(require_admin),
    session: Session = Depends(get_session),
) -> dict:
    return registrations.delete_registration(session, paper_id)
