"""
共享 Fixtures: 内存 SQLite 引擎、录制型邮件 transport、账号/论文工厂、API 客户端。
"""

import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Set

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from config.settings import MailSettings, settings  # noqa: E402
from confreview.auth import create_token, hash_password  # noqa: E402
from confreview.db.engine import build_engine, init_db, set_engine  # noqa: E402
from confreview.db.models import Registration, User  # noqa: E402
from confreview.notifications import SmtpTransport, set_transport  # noqa: E402
from confreview.workflow.errors import NotificationError  # noqa: E402

DEFAULT_PASSWORD = "secret123"


class FakeTransport:
    """Records every message instead of talking to SMTP."""

    def __init__(self):
        self.sent: List[Dict[str, str]] = []
        self.fail = False
        self.fail_for: Set[str] = set()

    def send(self, recipient: str, subject: str, html_body: str) -> None:
        if self.fail:
            raise NotificationError("smtp unavailable")
        if recipient in self.fail_for:
            raise NotificationError(f"mailbox unavailable: {recipient}")
        self.sent.append({"to": recipient, "subject": subject, "body": html_body})

    def recipients(self) -> List[str]:
        return [m["to"] for m in self.sent]


@pytest.fixture(autouse=True)
def engine():
    """Fresh in-memory database per test."""
    eng = build_engine("sqlite://", poolclass=StaticPool)
    set_engine(eng)
    init_db()
    yield eng
    SQLModel.metadata.drop_all(eng)
    set_engine(None)
    eng.dispose()


@pytest.fixture(autouse=True)
def synchronous_dispatch(monkeypatch):
    """After-commit sends run on the calling thread so tests can assert on them."""
    monkeypatch.setattr(settings.notifications, "dispatch_background", False)


@pytest.fixture(autouse=True)
def mailer():
    fake = FakeTransport()
    set_transport(fake)
    yield fake
    set_transport(None)


@pytest.fixture
def smtp_transport(mailer):
    """The real SMTP transport with credentials set. Addresses that cannot form a
    message fail before any connection is opened."""
    transport = SmtpTransport(MailSettings(
        host="127.0.0.1", port=1, use_tls=False,
        user="noreply@example.org", password="pw", timeout_seconds=1,
    ))
    set_transport(transport)
    return transport


@pytest.fixture
def session(engine):
    with Session(engine) as s:
        yield s


# ── Factories ────────────────────────────────────────────────────────────────

_counter = {"n": 0}


def _next() -> int:
    _counter["n"] += 1
    return _counter["n"]


@pytest.fixture
def make_user(session):
    def _make(role: str = "user", name: Optional[str] = None, email: Optional[str] = None,
              track: Optional[str] = None, password: str = DEFAULT_PASSWORD, first_login: bool = False) -> User:
        n = _next()
        user = User(
            name=name or f"{role.title()} {n}",
            email=email or f"{role}{n}@example.org",
            password_hash=hash_password(password),
            role=role,
            track=track,
            is_first_login=1 if first_login else 0,
        )
        session.add(user)
        session.commit()
        session.refresh(user)
        return user
    return _make


@pytest.fixture
def make_paper(session):
    def _make(title: Optional[str] = None, owner: Optional[User] = None,
              authors: Optional[List[Dict[str, Any]]] = None, **fields) -> Registration:
        n = _next()
        if authors is None:
            authors = [
                {"name": "Ada Lovelace", "email": f"ada{n}@example.org", "mobile": "9876543210"},
                {"name": "Charles Babbage", "email": f"charles{n}@example.org", "mobile": "9123456780"},
            ]
        paper = Registration(
            user_id=owner.id if owner is not None else None,
            paper_title=title or f"Paper {n}",
            authors=json.dumps(authors),
            email=authors[0].get("email", "") if authors else "",
            abstract_blob=b"%PDF-1.4 abstract",
            **fields,
        )
        session.add(paper)
        session.commit()
        session.refresh(paper)
        return paper
    return _make


# ── API ──────────────────────────────────────────────────────────────────────

@pytest.fixture
def client():
    from fastapi.testclient import TestClient
    from confreview.api.server import app
    return TestClient(app)


@pytest.fixture
def auth_header():
    def _header(user: User) -> Dict[str, str]:
        return {"Authorization": f"Bearer {create_token(user)}"}
    return _header
