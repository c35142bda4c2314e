"""Signed access tokens for conference accounts.

A token is an HS256 JWT carrying the account's identity (id, name, email,
role, track, first-login flag), so role checks in the API never hit the
database. Logout stores the SHA-256 of the token in ``revoked_tokens`` until
the token would have expired anyway; only tokens with a valid signature are
looked up there.
"""

from __future__ import annotations

import hashlib
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import jwt
from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from confreview.db.engine import get_engine
from confreview.db.models import RevokedToken
from confreview.log import get_logger

logger = get_logger(__name__)

ALGORITHM = "HS256"
# identity claims every accepted token must carry
REQUIRED_CLAIMS = ("sub", "id", "role", "exp")


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


def _signing_key() -> str:
    from config.settings import settings
    return settings.auth.secret_key


def _fingerprint(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _decode(token: str, verify_exp: bool = True) -> Optional[dict[str, Any]]:
    try:
        return jwt.decode(
            token,
            _signing_key(),
            algorithms=[ALGORITHM],
            options={"verify_exp": verify_exp, "require": list(REQUIRED_CLAIMS) if verify_exp else []},
        )
    except jwt.InvalidTokenError:
        return None


def token_claims(user: Any) -> dict[str, Any]:
    """Identity claims for a ``User`` row."""
    return {
        "sub": str(user.id),
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "role": user.role,
        "track": user.track,
        "isFirstLogin": bool(user.is_first_login),
    }


def create_token(user: Any, expire_hours: Optional[float] = None) -> str:
    """Issue a token for *user* valid for ``auth.token_expire_hours`` unless overridden."""
    from config.settings import settings

    lifetime = timedelta(hours=settings.auth.token_expire_hours if expire_hours is None else expire_hours)
    issued = _utcnow()
    claims = token_claims(user)
    claims.update(iat=issued, exp=issued + lifetime, jti=uuid.uuid4().hex)
    return jwt.encode(claims, _signing_key(), algorithm=ALGORITHM)


def is_revoked(token: str) -> bool:
    try:
        with Session(get_engine()) as session:
            return session.get(RevokedToken, _fingerprint(token)) is not None
    except SQLAlchemyError as e:
        # a broken revocation table must not log everyone out
        logger.warning("[auth] revocation lookup failed, accepting token: %s", e)
        return False


def verify_token(token: str) -> Optional[dict[str, Any]]:
    """Claims of a well-signed, unexpired, unrevoked token; ``None`` otherwise."""
    if not token:
        return None
    claims = _decode(token)
    if claims is None or claims.get("id") is None:
        return None
    if is_revoked(token):
        return None
    return claims


def revoke_token(token: str) -> bool:
    """Remember *token* as logged out. Expired tokens are accepted too.

    Returns False when the token is not ours or the row could not be written.
    """
    claims = _decode(token, verify_exp=False) if token else None
    if claims is None:
        return False

    exp = claims.get("exp")
    expires_at = datetime.fromtimestamp(exp, tz=timezone.utc) if exp is not None else _utcnow()
    try:
        with Session(get_engine()) as session:
            session.merge(RevokedToken(
                token_hash=_fingerprint(token),
                expires_at=expires_at.isoformat(),
                revoked_at=_utcnow().isoformat(),
            ))
            session.commit()
    except SQLAlchemyError:
        logger.exception("[auth] could not store token revocation")
        return False
    return True


def purge_expired_revocations() -> int:
    """Drop revocation rows whose token has expired; returns how many went."""
    try:
        with Session(get_engine()) as session:
            result = session.exec(
                delete(RevokedToken).where(RevokedToken.expires_at < _utcnow().isoformat())
            )
            session.commit()
            return result.rowcount or 0
    except SQLAlchemyError:
        logger.exception("[auth] purging expired revocations failed")
        return 0
