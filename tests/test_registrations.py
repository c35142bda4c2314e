"""
Paper registrations: submission validation, final papers, listings, admin maintenance.
"""

import json

import pytest
from sqlmodel import select

from config.settings import settings
from confreview.db.models import NotificationOutbox, PaperAssignment, PaperReview, Registration
from confreview.stores import registrations
from confreview.utils.files import DOC, DOCX, PDF, UNKNOWN, b64, safe_filename, sniff_document
from confreview.workflow import assignment, review
from confreview.workflow.errors import AuthorizationError, NotFound, ValidationError

PDF_BYTES = b"%PDF-1.7 body"

AUTHORS = [
    {"name": "Ada Lovelace", "email": "ada@example.org", "mobile": "9876543210"},
    {"name": "Charles Babbage", "email": "charles@example.org", "mobile": "9123456780"},
]


def _register(session, owner, title="Analytical Engines", **kwargs):
    kwargs.setdefault("authors", AUTHORS)
    kwargs.setdefault("abstract", PDF_BYTES)
    kwargs.setdefault("content_type", PDF[0])
    return registrations.register_paper(session, owner.id, title, **kwargs)


# ---------------------------------------------------------------------------
# file helpers
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("blob, expected", [
    (b"%PDF-1.4", PDF),
    (b"\xd0\xcf\x11\xe0\xa1\xb1", DOC),
    (b"PK\x03\x04", DOCX),
    (b"GIF89a", UNKNOWN),
    (b"PK", UNKNOWN),
])
def test_sniff_document(blob, expected):
    assert sniff_document(blob) == expected


def test_safe_filename_and_b64():
    assert safe_filename("My paper: v2", "final", "pdf") == "Mypaperv2_final.pdf"
    assert safe_filename("???", "final", "doc") == "paper_final.doc"
    assert b64(b"") is None
    assert b64(b"hi") == "aGk="


# ---------------------------------------------------------------------------
# submission
# ---------------------------------------------------------------------------

def test_register_paper_stores_row_and_queues_emails(session, make_user, mailer, monkeypatch):
    monkeypatch.setattr(settings.mail, "admin_recipients", ["chair@example.org"])
    owner = make_user("user")

    result = _register(session, owner, tracks="AI", country="India", state="Kerala", city="Kochi")

    assert result["message"] == "Registration successful"
    session.expire_all()
    paper = session.get(Registration, result["id"])
    assert paper.status == "submitted"
    assert paper.final_submission_status == "not_submitted"
    assert paper.email == "ada@example.org"
    assert paper.abstract_blob == PDF_BYTES
    assert json.loads(paper.authors)[1]["name"] == "Charles Babbage"
    assert mailer.recipients() == ["chair@example.org", "ada@example.org", "charles@example.org"]


@pytest.mark.parametrize("authors, message", [
    ([], "At least one author is required"),
    ("Ada", "At least one author is required"),
    ([{"name": "Ada", "email": "a@example.org", "mobile": "12345"}],
     "Invalid mobile number for author Ada. Must be exactly 10 digits."),
    ([{"name": "Ada", "email": "a@example.org"}],
     "Invalid mobile number for author Ada. Must be exactly 10 digits."),
])
def test_author_validation(session, make_user, authors, message):
    owner = make_user("user")
    with pytest.raises(ValidationError) as exc:
        _register(session, owner, authors=authors)
    assert exc.value.message == message
    assert session.exec(select(Registration)).all() == []


def test_upload_validation(session, make_user, monkeypatch):
    owner = make_user("user")
    with pytest.raises(ValidationError, match="file required"):
        _register(session, owner, abstract=None)
    with pytest.raises(ValidationError, match="Only PDF, DOC, and DOCX"):
        _register(session, owner, content_type="image/png")
    monkeypatch.setattr(settings.upload, "max_size_mb", 0)
    with pytest.raises(ValidationError, match="MB limit"):
        _register(session, owner)


def test_register_with_reviewer_assigns_it(session, make_user):
    owner = make_user("user")
    reviewer = make_user("reviewer")
    result = _register(session, owner, assigned_reviewer_id=reviewer.id)
    session.expire_all()
    row = session.exec(select(PaperAssignment)).one()
    assert (row.paper_id, row.reviewer1) == (result["id"], reviewer.id)


def test_failed_reviewer_pick_does_not_fail_registration(session, make_user):
    owner = make_user("user")
    result = _register(session, owner, assigned_reviewer_id=owner.id)
    assert result["message"] == "Registration successful"
    assert session.exec(select(PaperAssignment)).all() == []


def test_authors_without_address_are_not_emailed(session, make_user, mailer, monkeypatch):
    monkeypatch.setattr(settings.mail, "admin_recipients", [])
    owner = make_user("user")
    authors = [dict(AUTHORS[0]), dict(AUTHORS[1], email="")]

    result = _register(session, owner, authors=authors)

    paper = session.get(Registration, result["id"])
    assert [a["name"] for a in paper.authors_with_email()] == ["Ada Lovelace"]
    assert mailer.recipients() == ["ada@example.org"]


def test_unsendable_author_address_does_not_fail_registration(session, make_user, smtp_transport, monkeypatch):
    monkeypatch.setattr(settings.mail, "admin_recipients", [])
    owner = make_user("user")
    authors = [{"name": "Ada", "email": "ada@example.org\r\nBcc: x@example.net", "mobile": "9876543210"}]

    result = _register(session, owner, authors=authors)

    assert result["message"] == "Registration successful"
    session.expire_all()
    note = session.exec(select(NotificationOutbox)).one()
    assert note.recipient == authors[0]["email"]
    assert (note.status, note.attempts) == ("pending", 1)


# ---------------------------------------------------------------------------
# final paper
# ---------------------------------------------------------------------------

def test_final_submission_and_download(session, make_user, mailer):
    owner = make_user("user")
    paper_id = _register(session, owner, title="Notes: Engine")["id"]
    mailer.sent.clear()

    docx = b"PK\x03\x04 camera ready"
    registrations.submit_final_paper(session, paper_id, owner.id, "user", docx, DOCX[0])

    assert mailer.recipients() == ["ada@example.org", "charles@example.org"]
    content, mime, filename = registrations.download_final_paper(session, paper_id, owner.id, "user")
    assert content == docx
    assert mime == DOCX[0]
    assert filename == "NotesEngine_final.docx"
    session.expire_all()
    assert session.get(Registration, paper_id).final_submission_status == "submitted"


def test_final_paper_access_rules(session, make_user):
    owner = make_user("user")
    other = make_user("user")
    paper_id = _register(session, owner)["id"]

    with pytest.raises(AuthorizationError):
        registrations.submit_final_paper(session, paper_id, other.id, "user", PDF_BYTES, PDF[0])
    with pytest.raises(NotFound, match="Final paper not available"):
        registrations.download_final_paper(session, paper_id, owner.id, "user")

    registrations.submit_final_paper(session, paper_id, other.id, "admin", PDF_BYTES, PDF[0])
    with pytest.raises(AuthorizationError):
        registrations.download_final_paper(session, paper_id, other.id, "user")
    assert registrations.download_final_paper(session, paper_id, other.id, "admin")[0] == PDF_BYTES
    with pytest.raises(NotFound, match="Paper not found"):
        registrations.download_final_paper(session, 999, owner.id, "admin")


def test_reset_final_submission(session, make_user, mailer):
    owner = make_user("user")
    paper_id = _register(session, owner)["id"]
    registrations.submit_final_paper(session, paper_id, owner.id, "user", PDF_BYTES, PDF[0])
    mailer.sent.clear()

    registrations.reset_final_submission(session, paper_id)

    session.expire_all()
    paper = session.get(Registration, paper_id)
    assert paper.final_paper_blob is None
    assert paper.final_submission_status == "not_submitted"
    assert all("Final Submission Reset" in m["subject"] for m in mailer.sent)
    assert len(mailer.sent) == 2


# ---------------------------------------------------------------------------
# listings and maintenance
# ---------------------------------------------------------------------------

def test_list_registrations_keeps_latest_row_per_title(session, make_user, make_paper):
    owner = make_user("user")
    make_paper(title="Same", owner=owner, updated_at="2026-01-01T00:00:00", created_at="2026-01-01T00:00:00")
    newer = make_paper(title="Same", owner=owner, updated_at="2026-02-01T00:00:00", created_at="2026-02-01T00:00:00")
    other = make_paper(title="Other", owner=owner, updated_at="2026-03-01T00:00:00", created_at="2026-03-01T00:00:00")

    rows = registrations.list_registrations(session)

    assert [r["id"] for r in rows] == [other.id, newer.id]
    assert rows[0]["phone"] == "9876543210"
    assert rows[0]["abstractBlob"] == b64(b"%PDF-1.4 abstract")
    assert rows[0]["finalPaperBlob"] is None


def test_paper_status_nests_reviews(session, make_user):
    owner = make_user("user")
    reviewer = make_user("reviewer", name="Grace")
    paper_id = _register(session, owner)["id"]
    assignment.assign(session, paper_id, reviewer.id)
    review.submit_review(session, paper_id, reviewer.id, "accepted", "Nice")

    [item] = registrations.paper_status(session, owner.id)

    assert item["id"] == paper_id
    assert item["status"] == "under_review"
    assert item["reviews"] == [{
        "status": "accepted",
        "comments": "Nice",
        "reviewedAt": item["reviews"][0]["reviewedAt"],
        "reviewerName": "Grace",
    }]
    assert registrations.paper_status(session, reviewer.id) == []


def test_delete_registration_cascades(session, make_user):
    owner = make_user("user")
    reviewer = make_user("reviewer")
    paper_id = _register(session, owner)["id"]
    assignment.assign(session, paper_id, reviewer.id)
    review.submit_review(session, paper_id, reviewer.id, "rejected")

    registrations.delete_registration(session, paper_id)

    session.expire_all()
    assert session.get(Registration, paper_id) is None
    assert session.exec(select(PaperAssignment)).all() == []
    assert session.exec(select(PaperReview)).all() == []
    with pytest.raises(NotFound):
        registrations.delete_registration(session, paper_id)


def test_analytics_and_total(session, make_paper):
    make_paper(country="India", state="Kerala")
    make_paper(country="India", state="Goa")
    make_paper(country="Nepal", state="")

    analytics = registrations.registration_analytics(session)

    assert analytics["countries"] == [{"country": "India", "count": 2}, {"country": "Nepal", "count": 1}]
    assert {"state": "Goa", "count": 1} in analytics["states"]
    assert len(analytics["states"]) == 2
    assert registrations.total_registrations(session) == {"total": 3}
