"""
Notification outbox and email templates.

Covers:
  - enqueue is bound to the caller's transaction
  - retry bookkeeping: pending until max_attempts, then failed
  - dispatch_pending worker pass, and failures that must not stop it
  - after-commit sends on the background thread
  - template rendering: HTML escaping, unknown kinds, missing fields
"""

import asyncio
import threading

import pytest
from sqlmodel import select

from config.settings import settings
from confreview.db.models import NotificationOutbox
from confreview.notifications import outbox
from confreview.notifications.templates import EMAIL_KINDS, TemplateManager
from confreview.workflow.errors import NotificationError


def _credentials(name="Ada"):
    return {"name": name, "email": "ada@example.org", "password": "pw123456"}


def test_rollback_discards_enqueued_email(session):
    outbox.enqueue(session, "reviewer_credentials", "ada@example.org", _credentials())
    session.rollback()
    assert session.exec(select(NotificationOutbox)).all() == []


def test_dispatch_marks_row_sent(session, mailer):
    row = outbox.enqueue(session, "reviewer_credentials", "ada@example.org", _credentials())
    session.commit()

    counts = outbox.dispatch_ids([row.id])

    assert counts == {"sent": 1, "pending": 0, "failed": 0}
    assert mailer.recipients() == ["ada@example.org"]
    session.expire_all()
    row = session.get(NotificationOutbox, row.id)
    assert row.status == "sent"
    assert row.sent_at is not None
    assert row.attempts == 1


def test_failures_stay_pending_until_max_attempts(session, mailer, monkeypatch):
    monkeypatch.setattr(settings.notifications, "max_attempts", 2)
    mailer.fail = True
    row = outbox.enqueue(session, "reviewer_credentials", "ada@example.org", _credentials())
    session.commit()

    assert outbox.dispatch_ids([row.id])["pending"] == 1
    assert outbox.dispatch_ids([row.id])["failed"] == 1
    # failed rows are not retried
    assert outbox.dispatch_ids([row.id]) == {"sent": 0, "pending": 0, "failed": 0}

    session.expire_all()
    row = session.get(NotificationOutbox, row.id)
    assert row.status == "failed"
    assert row.attempts == 2


def test_dispatch_pending_drains_oldest_rows(session, mailer):
    for i in range(3):
        outbox.enqueue(session, "reviewer_credentials", f"r{i}@example.org", _credentials(f"R{i}"))
    session.commit()

    counts = outbox.dispatch_pending(limit=2)

    assert counts["sent"] == 2
    assert mailer.recipients() == ["r0@example.org", "r1@example.org"]
    assert len(outbox.pending_ids()) == 1


def test_inline_dispatch_can_be_disabled(session, mailer, monkeypatch):
    monkeypatch.setattr(settings.notifications, "dispatch_inline", False)
    row = outbox.enqueue(session, "reviewer_credentials", "ada@example.org", _credentials())
    session.commit()
    outbox.dispatch_after_commit([row.id])
    assert mailer.sent == []


class _BrokenTransport:
    def send(self, recipient, subject, html_body):
        raise RuntimeError("socket layer exploded")


def test_unexpected_transport_error_counts_as_attempt(session):
    outbox.set_transport(_BrokenTransport())
    row = outbox.enqueue(session, "reviewer_credentials", "ada@example.org", _credentials())
    session.commit()

    assert outbox.dispatch_ids([row.id])["pending"] == 1

    session.expire_all()
    row = session.get(NotificationOutbox, row.id)
    assert row.attempts == 1
    assert row.last_error == "RuntimeError: socket layer exploded"


def test_worker_pass_gives_up_on_unsendable_address(session, smtp_transport, monkeypatch):
    monkeypatch.setattr(settings.notifications, "max_attempts", 2)
    row = outbox.enqueue(session, "reviewer_credentials", "rev@example.org\nX: y", _credentials())
    session.commit()

    assert outbox.dispatch_pending() == {"sent": 0, "pending": 1, "failed": 0}
    assert outbox.dispatch_pending() == {"sent": 0, "pending": 0, "failed": 1}

    session.expire_all()
    row = session.get(NotificationOutbox, row.id)
    assert (row.status, row.attempts) == ("failed", 2)
    assert "SMTP delivery" in row.last_error


def test_after_commit_dispatch_never_raises(monkeypatch):
    def _explode(row_ids):
        raise RuntimeError("database went away")

    monkeypatch.setattr(outbox, "dispatch_ids", _explode)
    assert outbox.dispatch_after_commit([1, 2]) is None


def test_worker_keeps_polling_after_a_failed_pass(monkeypatch):
    calls = []

    def _flaky(limit=None):
        calls.append(limit)
        if len(calls) == 1:
            raise ValueError("bad header")
        return {"sent": 0, "pending": 0, "failed": 0}

    monkeypatch.setattr(outbox, "dispatch_pending", _flaky)
    monkeypatch.setattr(settings.notifications, "poll_interval_seconds", 0)

    async def _run():
        task = asyncio.create_task(outbox.run_outbox_worker())
        while len(calls) < 3:
            await asyncio.sleep(0.01)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(asyncio.wait_for(_run(), timeout=5))
    assert len(calls) >= 3


class _GatedTransport:
    def __init__(self):
        self.gate = threading.Event()
        self.sent = []

    def send(self, recipient, subject, html_body):
        assert self.gate.wait(5)
        self.sent.append(recipient)


def test_background_dispatch_returns_before_delivery(session, monkeypatch):
    monkeypatch.setattr(settings.notifications, "dispatch_background", True)
    transport = _GatedTransport()
    outbox.set_transport(transport)
    row = outbox.enqueue(session, "reviewer_credentials", "ada@example.org", _credentials())
    session.commit()

    try:
        outbox.dispatch_after_commit([row.id])
        assert transport.sent == []

        transport.gate.set()
        assert outbox.wait_for_background(timeout=5)
    finally:
        transport.gate.set()
        outbox.shutdown_background(timeout=5)

    assert transport.sent == ["ada@example.org"]
    session.expire_all()
    assert session.get(NotificationOutbox, row.id).status == "sent"


# ---------------------------------------------------------------------------
# templates
# ---------------------------------------------------------------------------

def test_every_kind_has_a_template_file():
    tm = TemplateManager()
    for template_name, _ in EMAIL_KINDS.values():
        assert tm._load(template_name)


def test_values_are_html_escaped():
    subject, body = TemplateManager().render("reviewer_credentials", _credentials("<b>Ada</b>"))
    assert "&lt;b&gt;Ada&lt;/b&gt;" in body
    assert "<b>Ada</b>" not in body
    assert "Reviewer Account Credentials" in subject


def test_multiline_comments_keep_line_breaks():
    _, body = TemplateManager().render("paper_status_update", {
        "author_name": "Ada",
        "paper_title": "Engines",
        "paper_id": 1,
        "update_date": "2026-01-01",
        "reviewed_by": "Reviewers",
        "status_text": "REVIEWED",
        "comments": "line one\nline two",
    })
    assert "line one<br>line two" in body


def test_unknown_kind_and_missing_field():
    tm = TemplateManager()
    with pytest.raises(NotificationError):
        tm.render("newsletter", {})
    with pytest.raises(NotificationError):
        tm.render("reviewer_credentials", {"name": "Ada"})
