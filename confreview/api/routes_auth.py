"""
认证 API：注册、登录、修改密码、登出，以及路由共用的身份依赖。
"""

from typing import Any, Callable, Dict

from fastapi import APIRouter, Depends, Header, HTTPException
from sqlmodel import Session

from confreview.api.schemas import ChangePasswordRequest, LoginRequest, SignupRequest
from confreview.auth import revoke_token, verify_token
from confreview.db import get_session
from confreview.stores import users

router = APIRouter(prefix="/auth", tags=["auth"])


def _get_token_from_header(authorization: str | None = Header(None)) -> str | None:
    if not authorization or not authorization.startswith("Bearer "):
        return None
    return authorization[7:].strip() or None


def get_current_user(authorization: str | None = Header(None)) -> Dict[str, Any]:
    """Dependency: require a valid token, return its claims."""
    token = _get_token_from_header(authorization)
    if not token:
        raise HTTPException(status_code=401, detail="Access token missing")
    claims = verify_token(token)
    if not claims:
        raise HTTPException(status_code=401, detail="Invalid token")
    return claims


def require_roles(*roles: str) -> Callable[..., Dict[str, Any]]:
    """Dependency factory: the caller's role must be one of *roles*."""
    label = " or ".join(r.replace("_", " ").title() for r in roles)

    def _check(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
        if user.get("role") not in roles:
            raise HTTPException(status_code=403, detail=f"Access denied. {label} only.")
        return user

    return _check


require_admin = require_roles("admin")
require_reviewer = require_roles("reviewer")


@router.post("/signup", status_code=201)
def signup(body: SignupRequest, session: Session = Depends(get_session)) -> dict:
    return users.signup(session, body.name, body.email, body.password, body.role)


@router.post("/login")
def login(body: LoginRequest, session: Session = Depends(get_session)) -> dict:
    """邮箱+密码登录，返回 token。"""
    return users.login(session, body.email, body.password)


@router.post("/change-password")
def change_password(
    body: ChangePasswordRequest,
    user: Dict[str, Any] = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> dict:
    return users.change_password(session, int(user["id"]), body.current_password, body.new_password)


@router.post("/logout")
def logout(
    authorization: str | None = Header(None),
    _user: Dict[str, Any] = Depends(get_current_user),
) -> dict:
    revoke_token(_get_token_from_header(authorization) or "")
    return {"message": "Logged out"}


@router.get("/me")
def me(user: Dict[str, Any] = Depends(get_current_user)) -> dict:
    return {k: user.get(k) for k in ("id", "name", "email", "role", "track", "isFirstLogin")}
