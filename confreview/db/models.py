"""
SQLModel table definitions for the conference backend.

Design rules for SQLModel compatibility:
  - primary_key=True and foreign_key="..." must be set in Field() only,
    never combined with sa_column (SQLModel raises RuntimeError otherwise).
  - JSON list/dict columns stay as TEXT with Python-side serialization
    so SQLite and PostgreSQL (JSONB swap) are both supported transparently.
  - Timestamps are ISO-8601 TEXT; lexical order equals chronological order.
"""

import json
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import Column, Index, Integer, LargeBinary, Text, UniqueConstraint
from sqlmodel import Field, Relationship, SQLModel


def _now_iso() -> str:
    return datetime.now().isoformat()


# ──────────────────────────────────────────────────────────────────────────────
# 1. Identity
# ──────────────────────────────────────────────────────────────────────────────

class User(SQLModel, table=True):
    __tablename__ = "users"
    __table_args__ = (
        Index("idx_users_role", "role"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(default="", sa_column=Column(Text, nullable=False, server_default=""))
    email: str = Field(sa_column=Column(Text, nullable=False, unique=True))
    # NULL for accounts created through an external identity provider
    password_hash: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    role: str = Field(default="user", sa_column=Column(Text, nullable=False, server_default="user"))
    track: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    is_first_login: int = Field(default=0, sa_column=Column(Integer, nullable=False, server_default="0"))
    created_at: str = Field(default_factory=_now_iso, sa_column=Column(Text, nullable=False))


# ──────────────────────────────────────────────────────────────────────────────
# 2. Submissions
# ──────────────────────────────────────────────────────────────────────────────

class Registration(SQLModel, table=True):
    """A submitted paper. ``id`` is the paper id used by every other table."""

    __tablename__ = "registrations"
    __table_args__ = (
        Index("idx_registrations_user_title", "user_id", "paper_title"),
        Index("idx_registrations_status", "status"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: Optional[int] = Field(default=None, foreign_key="users.id", ondelete="SET NULL")
    paper_title: str = Field(default="", sa_column=Column(Text, nullable=False, server_default=""))
    authors: str = Field(default="[]", sa_column=Column(Text, nullable=False, server_default="[]"))
    email: str = Field(default="", sa_column=Column(Text, nullable=False, server_default=""))
    abstract_blob: Optional[bytes] = Field(default=None, sa_column=Column(LargeBinary, nullable=True))
    final_paper_blob: Optional[bytes] = Field(default=None, sa_column=Column(LargeBinary, nullable=True))
    tracks: str = Field(default="", sa_column=Column(Text, nullable=False, server_default=""))
    country: str = Field(default="", sa_column=Column(Text, nullable=False, server_default=""))
    state: str = Field(default="", sa_column=Column(Text, nullable=False, server_default=""))
    city: str = Field(default="", sa_column=Column(Text, nullable=False, server_default=""))
    status: str = Field(default="submitted", sa_column=Column(Text, nullable=False, server_default="submitted"))
    final_submission_status: str = Field(
        default="not_submitted",
        sa_column=Column(Text, nullable=False, server_default="not_submitted"),
    )
    comments: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    notification_sent: int = Field(default=0, sa_column=Column(Integer, nullable=False, server_default="0"))
    created_at: str = Field(default_factory=_now_iso, sa_column=Column(Text, nullable=False))
    updated_at: str = Field(default_factory=_now_iso, sa_column=Column(Text, nullable=False))

    assignment: Optional["PaperAssignment"] = Relationship(
        back_populates="paper",
        sa_relationship_kwargs={"cascade": "all, delete-orphan", "uselist": False},
    )
    reviews: List["PaperReview"] = Relationship(
        back_populates="paper",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"},
    )

    def get_authors(self) -> List[Dict[str, Any]]:
        try:
            authors = json.loads(self.authors or "[]")
        except Exception:
            return []
        return authors if isinstance(authors, list) else []

    def authors_with_email(self) -> List[Dict[str, Any]]:
        """Authors that carry a non-empty address, in author order."""
        return [a for a in self.get_authors() if isinstance(a, dict) and a.get("email")]


# ──────────────────────────────────────────────────────────────────────────────
# 3. Assignment & review ledgers
# ──────────────────────────────────────────────────────────────────────────────

class PaperAssignment(SQLModel, table=True):
    """At most one row per paper; two nullable reviewer slots that never shift."""

    __tablename__ = "paper_assignments"

    id: Optional[int] = Field(default=None, primary_key=True)
    paper_id: int = Field(foreign_key="registrations.id", ondelete="CASCADE", unique=True)
    reviewer1: Optional[int] = Field(default=None, foreign_key="users.id", ondelete="SET NULL")
    reviewer2: Optional[int] = Field(default=None, foreign_key="users.id", ondelete="SET NULL")
    assigned_at: str = Field(default_factory=_now_iso, sa_column=Column(Text, nullable=False))

    paper: Optional[Registration] = Relationship(back_populates="assignment")


class PaperReview(SQLModel, table=True):
    __tablename__ = "paper_reviews"
    __table_args__ = (
        UniqueConstraint("paper_id", "reviewer_id", name="uq_paper_reviews_paper_reviewer"),
        Index("idx_paper_reviews_reviewer", "reviewer_id"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    paper_id: int = Field(foreign_key="registrations.id", ondelete="CASCADE")
    reviewer_id: int = Field(foreign_key="users.id", ondelete="CASCADE")
    status: str = Field(default="under_review", sa_column=Column(Text, nullable=False, server_default="under_review"))
    comments: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    reviewed_at: str = Field(default_factory=_now_iso, sa_column=Column(Text, nullable=False))

    paper: Optional[Registration] = Relationship(back_populates="reviews")


# ──────────────────────────────────────────────────────────────────────────────
# 4. Notification outbox
# ──────────────────────────────────────────────────────────────────────────────

class NotificationOutbox(SQLModel, table=True):
    """One row per intended email, written with the mutation that caused it."""

    __tablename__ = "notification_outbox"
    __table_args__ = (
        Index("idx_notification_outbox_status_created", "status", "created_at"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    kind: str = Field(sa_column=Column(Text, nullable=False))
    recipient: str = Field(sa_column=Column(Text, nullable=False))
    payload_json: str = Field(default="{}", sa_column=Column(Text, nullable=False, server_default="{}"))
    status: str = Field(default="pending", sa_column=Column(Text, nullable=False, server_default="pending"))
    attempts: int = Field(default=0, sa_column=Column(Integer, nullable=False, server_default="0"))
    last_error: str = Field(default="", sa_column=Column(Text, nullable=False, server_default=""))
    created_at: str = Field(default_factory=_now_iso, sa_column=Column(Text, nullable=False))
    updated_at: str = Field(default_factory=_now_iso, sa_column=Column(Text, nullable=False))
    sent_at: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))

    def get_payload(self) -> Dict[str, Any]:
        try:
            return json.loads(self.payload_json or "{}")
        except Exception:
            return {}


# ──────────────────────────────────────────────────────────────────────────────
# 5. Support tickets & visitor counter
# ──────────────────────────────────────────────────────────────────────────────

class SupportTicket(SQLModel, table=True):
    __tablename__ = "support_tickets"
    __table_args__ = (
        Index("idx_support_tickets_status", "status"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str = Field(sa_column=Column(Text, nullable=False))
    description: str = Field(default="", sa_column=Column(Text, nullable=False, server_default=""))
    priority: str = Field(default="medium", sa_column=Column(Text, nullable=False, server_default="medium"))
    status: str = Field(default="open", sa_column=Column(Text, nullable=False, server_default="open"))
    user_id: Optional[int] = Field(default=None, foreign_key="users.id", ondelete="SET NULL")
    assigned_to: Optional[int] = Field(default=None, foreign_key="users.id", ondelete="SET NULL")
    created_at: str = Field(default_factory=_now_iso, sa_column=Column(Text, nullable=False))
    updated_at: str = Field(default_factory=_now_iso, sa_column=Column(Text, nullable=False))


class VisitorCounter(SQLModel, table=True):
    __tablename__ = "visitor_counter"

    id: int = Field(default=1, primary_key=True)
    count: int = Field(default=0, sa_column=Column(Integer, nullable=False, server_default="0"))


# ──────────────────────────────────────────────────────────────────────────────
# 6. Auth
# ──────────────────────────────────────────────────────────────────────────────

class RevokedToken(SQLModel, table=True):
    """SHA-256 hashes of explicitly revoked JWTs.

    Rows whose `expires_at` is in the past can be safely purged.
    """

    __tablename__ = "revoked_tokens"
    __table_args__ = (
        Index("idx_revoked_tokens_expires_at", "expires_at"),
    )

    token_hash: str = Field(sa_column=Column(Text, primary_key=True, nullable=False))
    # ISO-8601 copy of the JWT `exp` claim, used for cleanup
    expires_at: str = Field(sa_column=Column(Text, nullable=False))
    revoked_at: str = Field(default_factory=_now_iso, sa_column=Column(Text, nullable=False))
