"""
审稿分配 API（管理员）：分配 / 撤销 / 替换审稿人，以及分配看板的各类列表。
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from confreview.api.routes_auth import require_admin
from confreview.api.schemas import AssignRequest, ReassignRequest
from confreview.db import get_session
from confreview.workflow import assignment, listings

router = APIRouter(prefix="/admin", tags=["assignments"])


def paper_filters(
    from_date: Optional[str] = Query(None, alias="fromDate"),
    to_date: Optional[str] = Query(None, alias="toDate"),
    paper_tracks: Optional[List[str]] = Query(None, alias="paperTracks"),
    reviewer_tracks: Optional[List[str]] = Query(None, alias="reviewerTracks"),
) -> listings.PaperFilters:
    return listings.PaperFilters(
        from_date=from_date,
        to_date=to_date,
        paper_tracks=paper_tracks or [],
        reviewer_tracks=reviewer_tracks or [],
    )


@router.post("/assignments", status_code=201)
def assign_reviewer(
    body: AssignRequest,
    _admin: Dict[str, Any] = Depends(require_admin),
    session: Session = Depends(get_session),
) -> dict:
    return assignment.assign(session, body.paper_id, body.reviewer_id)


@router.get("/assignments")
def list_assignments(
    filters: listings.PaperFilters = Depends(paper_filters),
    _admin: Dict[str, Any] = Depends(require_admin),
    session: Session = Depends(get_session),
) -> list:
    return listings.list_assignments(session, filters)


@router.delete("/assignments/{paper_id}/{reviewer_id}")
def unassign_reviewer(
    paper_id: int,
    reviewer_id: int,
    _admin: Dict[str, Any] = Depends(require_admin),
    session: Session = Depends(get_session),
) -> dict:
    return assignment.unassign(session, paper_id, reviewer_id)


@router.put("/assignments/{paper_id}/{reviewer_id}")
def reassign_reviewer(
    paper_id: int,
    reviewer_id: int,
    body: ReassignRequest,
    _admin: Dict[str, Any] = Depends(require_admin),
    session: Session = Depends(get_session),
) -> dict:
    return assignment.reassign(session, paper_id, reviewer_id, body.reviewer_id)


@router.get("/papers/unassigned")
def unassigned_papers(
    filters: listings.PaperFilters = Depends(paper_filters),
    _admin: Dict[str, Any] = Depends(require_admin),
    session: Session = Depends(get_session),
) -> list:
    return listings.list_unassigned_papers(session, filters)


@router.get("/papers/available")
def papers_available_for_assignment(
    filters: listings.PaperFilters = Depends(paper_filters),
    _admin: Dict[str, Any] = Depends(require_admin),
    session: Session = Depends(get_session),
) -> list:
    return listings.list_papers_available_for_assignment(session, filters)


@router.get("/registrations/with-assignments")
def registrations_with_assignments(
    _admin: Dict[str, Any] = Depends(require_admin),
    session: Session = Depends(get_session),
) -> list:
    return listings.list_registrations_with_assignments(session)


@router.get("/reviewers/with-assignments")
def reviewers_with_assignments(
    _admin: Dict[str, Any] = Depends(require_admin),
    session: Session = Depends(get_session),
) -> list:
    return listings.list_reviewers_with_assignments(session)
