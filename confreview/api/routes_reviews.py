"""
审稿人 API：查看分配给自己的论文、提交审稿意见。
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends
from sqlmodel import Session

from confreview.api.routes_auth import require_reviewer
from confreview.api.schemas import ReviewRequest
from confreview.db import get_session
from confreview.workflow import listings, review

router = APIRouter(prefix="/reviewer", tags=["reviewer"])


@router.get("/assigned-papers")
def assigned_papers(
    reviewer: Dict[str, Any] = Depends(require_reviewer),
    session: Session = Depends(get_session),
) -> list:
    return listings.list_assigned_papers(session, int(reviewer["id"]))


@router.post("/reviews")
def submit_review(
    body: ReviewRequest,
    reviewer: Dict[str, Any] = Depends(require_reviewer),
    session: Session = Depends(get_session),
) -> dict:
    return review.submit_review(session, body.paper_id, int(reviewer["id"]), body.status, body.comments)
