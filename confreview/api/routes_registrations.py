"""
论文注册 API：提交摘要 / 终稿（multipart）、列表、作者查看状态、下载终稿。
"""

import json
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import Response
from sqlmodel import Session

from confreview.api.routes_auth import get_current_user
from confreview.db import get_session
from confreview.stores import registrations
from confreview.workflow.errors import AuthorizationError, ValidationError

router = APIRouter(prefix="/registrations", tags=["registrations"])


def _parse_authors(raw: Optional[str]) -> List[Dict[str, Any]]:
    try:
        authors = json.loads(raw or "[]")
    except json.JSONDecodeError:
        raise ValidationError("authors must be a JSON array")
    return authors


def _optional_id(raw: Optional[str]) -> Optional[int]:
    if raw is None or raw.strip() in ("", "null", "undefined"):
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"Invalid id: {raw}")


@router.post("")
def register_paper(
    paper_title: str = Form("", alias="paperTitle"),
    authors: Optional[str] = Form(None),
    tracks: str = Form(""),
    country: str = Form(""),
    state: str = Form(""),
    city: str = Form(""),
    assigned_reviewer_id: Optional[str] = Form(None, alias="assignedReviewerId"),
    original_paper_id: Optional[str] = Form(None, alias="originalPaperId"),
    abstract: Optional[UploadFile] = File(None),
    user: Dict[str, Any] = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> dict:
    """
    新投稿或终稿提交。

    带 ``originalPaperId`` 时，上传文件作为该论文的终稿保存；否则新建注册记录。
    """
    content = abstract.file.read() if abstract is not None else None
    content_type = abstract.content_type if abstract is not None else None

    paper_id = _optional_id(original_paper_id)
    if paper_id is not None:
        return registrations.submit_final_paper(
            session, paper_id, int(user["id"]), user.get("role", ""), content, content_type,
        )
    return registrations.register_paper(
        session,
        user_id=int(user["id"]),
        paper_title=paper_title,
        authors=_parse_authors(authors),
        abstract=content,
        content_type=content_type,
        tracks=tracks,
        country=country,
        state=state,
        city=city,
        assigned_reviewer_id=_optional_id(assigned_reviewer_id),
    )


@router.get("")
def list_registrations(
    _user: Dict[str, Any] = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> list:
    return registrations.list_registrations(session)


@router.get("/status/{user_id}")
def paper_status(
    user_id: int,
    user: Dict[str, Any] = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> list:
    if user.get("role") != "admin" and int(user["id"]) != user_id:
        raise AuthorizationError("Access denied")
    return registrations.paper_status(session, user_id)


@router.get("/{paper_id}/final-paper")
def download_final_paper(
    paper_id: int,
    user: Dict[str, Any] = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> Response:
    content, mime, filename = registrations.download_final_paper(
        session, paper_id, int(user["id"]), user.get("role", ""),
    )
    return Response(
        content=content,
        media_type=mime,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
