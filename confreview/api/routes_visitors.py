"""
访客计数 API：每个浏览器（visited cookie）只计一次。
"""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlmodel import Session

from confreview.db import get_session
from confreview.stores import visitors

router = APIRouter(prefix="/visitors", tags=["visitors"])


@router.get("")
def get_visitor_count(session: Session = Depends(get_session)) -> dict:
    return {"count": visitors.get_count(session)}


@router.post("")
def record_visit(request: Request, session: Session = Depends(get_session)) -> JSONResponse:
    if request.cookies.get(visitors.COOKIE_NAME):
        return JSONResponse({"count": visitors.get_count(session)})

    response = JSONResponse({"count": visitors.increment(session)})
    response.set_cookie(
        visitors.COOKIE_NAME,
        "true",
        max_age=visitors.COOKIE_MAX_AGE,
        httponly=True,
        samesite="lax",
    )
    return response
