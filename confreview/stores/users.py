"""
Accounts: self-service signup/login, password changes and admin-managed
reviewer accounts.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlalchemy import delete, or_
from sqlmodel import Session, select

from config.settings import settings
from confreview.auth import create_token, generate_password, hash_password, verify_password
from confreview.db.models import PaperAssignment, PaperReview, User
from confreview.log import get_logger
from confreview.notifications import outbox
from confreview.workflow.errors import AuthorizationError, Conflict, NotFound, ValidationError

logger = get_logger(__name__)

ROLES = ("user", "reviewer", "admin", "technician", "support_admin")
# roles an anonymous caller may pick for themselves
SIGNUP_ROLES = ("user",)


def _public(user: User) -> Dict[str, Any]:
    return {"id": user.id, "name": user.name, "email": user.email, "role": user.role}


def get_by_email(session: Session, email: str) -> Optional[User]:
    return session.exec(select(User).where(User.email == email)).first()


def _email_taken(session: Session, email: str, exclude_id: Optional[int] = None) -> bool:
    stmt = select(User.id).where(User.email == email)
    if exclude_id is not None:
        stmt = stmt.where(User.id != exclude_id)
    return session.exec(stmt).first() is not None


# ──────────────────────────────────────────────────────────────────────────────
# Self-service
# ──────────────────────────────────────────────────────────────────────────────

def signup(session: Session, name: str, email: str, password: str, role: Optional[str] = None) -> Dict[str, Any]:
    if not name or not email or not password:
        raise ValidationError("Name, email, and password are required")
    role = role or "user"
    if role not in ROLES:
        raise ValidationError("Invalid role")
    if role not in SIGNUP_ROLES:
        raise AuthorizationError("Role cannot be self-assigned")
    if _email_taken(session, email):
        raise Conflict("User already exists")

    user = User(name=name, email=email, password_hash=hash_password(password), role=role)
    session.add(user)
    session.commit()
    session.refresh(user)
    logger.info("[account] signup id=%s role=%s", user.id, role)
    return {"message": "User created successfully", "token": create_token(user), "user": _public(user)}


def login(session: Session, email: str, password: str) -> Dict[str, Any]:
    if not email or not password:
        raise ValidationError("Email and password are required")
    user = get_by_email(session, email)
    if user is None or not verify_password(password, user.password_hash):
        raise ValidationError("Invalid credentials")

    out = _public(user)
    if user.role == "reviewer" and user.is_first_login:
        out["isFirstLogin"] = True
    return {"message": "Login successful", "token": create_token(user), "user": out}


def change_password(session: Session, user_id: int, current_password: str, new_password: str) -> Dict[str, Any]:
    """Set a new password and clear ``is_first_login``.

    On first login the current password is not checked; admin-issued
    accounts change their generated password here.
    """
    if not current_password or not new_password:
        raise ValidationError("Current password and new password are required")
    min_len = settings.auth.min_password_length
    if len(new_password) < min_len:
        raise ValidationError(f"New password must be at least {min_len} characters long")

    user = session.get(User, user_id)
    if user is None:
        raise NotFound("User not found")
    if not user.is_first_login and not verify_password(current_password, user.password_hash):
        raise ValidationError("Current password is incorrect")

    user.password_hash = hash_password(new_password)
    user.is_first_login = 0
    session.add(user)
    session.commit()
    session.refresh(user)
    logger.info("[account] password changed id=%s", user_id)
    return {"message": "Password changed successfully", "token": create_token(user)}


# ──────────────────────────────────────────────────────────────────────────────
# Reviewer management (admin)
# ──────────────────────────────────────────────────────────────────────────────

def _get_reviewer(session: Session, reviewer_id: int) -> User:
    user = session.get(User, reviewer_id)
    if user is None or user.role != "reviewer":
        raise NotFound("Reviewer not found")
    return user


def create_reviewer(
    session: Session, name: str, email: str, track: str, password: Optional[str] = None
) -> Dict[str, Any]:
    """Create a first-login reviewer account and queue its credentials email."""
    if not name or not email or not track:
        raise ValidationError("Name, email, and track are required")
    if _email_taken(session, email):
        raise Conflict("User already exists")

    password = password or generate_password()
    user = User(
        name=name,
        email=email,
        password_hash=hash_password(password),
        role="reviewer",
        track=track,
        is_first_login=1,
    )
    session.add(user)
    session.flush()
    note = outbox.enqueue(session, "reviewer_credentials", email, {
        "name": name,
        "email": email,
        "password": password,
    })
    session.commit()
    session.refresh(user)
    logger.info("[account] reviewer created id=%s track=%s", user.id, track)
    outbox.dispatch_after_commit([note.id])
    return {
        "message": "Reviewer created successfully",
        "user": {"id": user.id, "name": name, "email": email, "role": "reviewer", "track": track},
        "emailSent": True,
    }


def list_reviewers(session: Session) -> List[Dict[str, Any]]:
    users = session.exec(select(User).where(User.role == "reviewer").order_by(User.name)).all()
    return [{"id": u.id, "name": u.name, "email": u.email, "track": u.track} for u in users]


def update_reviewer(session: Session, reviewer_id: int, name: str, email: str, track: str) -> Dict[str, Any]:
    if not name or not email or not track:
        raise ValidationError("ID, name, email, and track are required")
    user = _get_reviewer(session, reviewer_id)
    if email != user.email and _email_taken(session, email, exclude_id=reviewer_id):
        raise Conflict("Email already exists")

    user.name = name
    user.email = email
    user.track = track
    session.add(user)
    session.commit()
    return {
        "message": "Reviewer updated successfully",
        "reviewer": {"id": reviewer_id, "name": name, "email": email, "track": track},
    }


def delete_reviewer(session: Session, reviewer_id: int) -> Dict[str, Any]:
    """Delete the reviewer together with every assignment row naming them and their reviews."""
    user = _get_reviewer(session, reviewer_id)
    name = user.name
    session.exec(delete(PaperAssignment).where(
        or_(PaperAssignment.reviewer1 == reviewer_id, PaperAssignment.reviewer2 == reviewer_id)
    ))
    session.exec(delete(PaperReview).where(PaperReview.reviewer_id == reviewer_id))
    session.delete(user)
    session.commit()
    logger.info("[account] reviewer deleted id=%s", reviewer_id)
    return {
        "message": f'Reviewer "{name}" deleted successfully',
        "deletedReviewer": {"id": reviewer_id, "name": name},
    }


def list_technicians(session: Session) -> List[Dict[str, Any]]:
    users = session.exec(select(User).where(User.role == "technician").order_by(User.name)).all()
    return [{"id": u.id, "name": u.name, "email": u.email} for u in users]


# ──────────────────────────────────────────────────────────────────────────────
# Bootstrap
# ──────────────────────────────────────────────────────────────────────────────

def seed_admin(
    session: Session,
    email: Optional[str] = None,
    password: Optional[str] = None,
    name: Optional[str] = None,
) -> bool:
    """Create the configured admin account if no user has that email. Returns True if created."""
    cfg = settings.auth
    email = email or cfg.admin_email
    if get_by_email(session, email) is not None:
        logger.info("[account] admin %s already exists", email)
        return False
    session.add(User(
        name=name or cfg.admin_name,
        email=email,
        password_hash=hash_password(password or cfg.admin_default_password),
        role="admin",
    ))
    session.commit()
    logger.info("[account] default admin created: %s", email)
    return True
