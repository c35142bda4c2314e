"""
Review status workflow: reviewer verdicts, admin decisions, author notifications.
"""

import pytest
from sqlmodel import select

from confreview.db.models import NotificationOutbox, PaperReview, Registration
from confreview.workflow import assignment, review
from confreview.workflow.errors import (
    AlreadyNotified,
    InvalidStatus,
    NotAssigned,
    NotFound,
    ValidationError,
)


@pytest.fixture
def assigned(session, make_paper, make_user):
    """A paper with one reviewer in slot 1."""
    paper = make_paper()
    reviewer = make_user("reviewer", track="AI")
    assignment.assign(session, paper.id, reviewer.id)
    return paper.id, reviewer.id


def test_unassigned_reviewer_cannot_review(session, make_paper, make_user):
    paper = make_paper()
    stranger = make_user("reviewer")
    with pytest.raises(NotAssigned):
        review.submit_review(session, paper.id, stranger.id, "accepted")
    assert session.exec(select(PaperReview)).all() == []


def test_unknown_status_is_rejected(session, assigned):
    paper_id, reviewer_id = assigned
    with pytest.raises(InvalidStatus):
        review.submit_review(session, paper_id, reviewer_id, "maybe")


def test_missing_fields(session, assigned):
    _, reviewer_id = assigned
    with pytest.raises(ValidationError):
        review.submit_review(session, None, reviewer_id, "accepted")


def test_resubmission_overwrites_single_row(session, assigned):
    paper_id, reviewer_id = assigned
    review.submit_review(session, paper_id, reviewer_id, "accepted", "good")
    result = review.submit_review(session, paper_id, reviewer_id, "rejected", "changed my mind")

    assert result["status"] == "rejected"
    session.expire_all()
    rows = session.exec(select(PaperReview).where(PaperReview.paper_id == paper_id)).all()
    assert len(rows) == 1
    assert rows[0].status == "rejected"
    assert rows[0].comments == "changed my mind"


def test_review_does_not_touch_paper_status(session, assigned):
    paper_id, reviewer_id = assigned
    review.submit_review(session, paper_id, reviewer_id, "accepted")
    session.expire_all()
    assert session.get(Registration, paper_id).status == "under_review"


def test_set_paper_status_allows_any_transition(session, make_paper):
    paper = make_paper()
    review.set_paper_status(session, paper.id, "published")
    review.set_paper_status(session, paper.id, "under_review")
    session.expire_all()
    assert session.get(Registration, paper.id).status == "under_review"

    with pytest.raises(InvalidStatus):
        review.set_paper_status(session, paper.id, "submitted")
    with pytest.raises(NotFound):
        review.set_paper_status(session, 4242, "accepted")


# ---------------------------------------------------------------------------
# author notifications
# ---------------------------------------------------------------------------

def test_decision_mode_requires_admin_decision(session, make_paper):
    paper = make_paper()
    with pytest.raises(ValidationError):
        review.notify_authors(session, paper.id, "decision")


def test_decision_mode_emails_every_author(session, make_paper, mailer):
    paper = make_paper(status="accepted_with_minor_revision", comments="Fix figure 3")
    result = review.notify_authors(session, paper.id, "decision")

    assert result["emailsSent"] == 2
    assert mailer.recipients() == [a["email"] for a in paper.get_authors()]
    body = mailer.sent[0]["body"]
    assert "ACCEPTED WITH MINOR REVISION" in body
    assert "Fix figure 3" in body
    session.expire_all()
    assert session.get(Registration, paper.id).notification_sent == 1


def test_one_failing_author_does_not_stop_the_others(session, make_paper, mailer):
    authors = [
        {"name": "Ada", "email": "ada@example.org", "mobile": "9876543210"},
        {"name": "Grace", "email": "grace@example.org", "mobile": "9876543211"},
        {"name": "Alan", "email": "alan@example.org", "mobile": "9876543212"},
    ]
    paper = make_paper(authors=authors, status="accepted")
    mailer.fail_for = {"grace@example.org"}

    result = review.notify_authors(session, paper.id, "decision")

    assert result["emailsSent"] == 3
    assert mailer.recipients() == ["ada@example.org", "alan@example.org"]
    session.expire_all()
    assert session.get(Registration, paper.id).notification_sent == 1
    rows = {n.recipient: n for n in session.exec(select(NotificationOutbox)).all()}
    assert rows["ada@example.org"].status == "sent"
    assert rows["alan@example.org"].status == "sent"
    assert (rows["grace@example.org"].status, rows["grace@example.org"].attempts) == ("pending", 1)
    assert "mailbox unavailable" in rows["grace@example.org"].last_error


def test_aggregate_mode_collects_reviewer_comments(session, make_paper, make_user, mailer):
    paper = make_paper()
    first = make_user("reviewer", name="Grace")
    second = make_user("reviewer", name="Alan")
    assignment.assign(session, paper.id, first.id)
    assignment.assign(session, paper.id, second.id)
    review.submit_review(session, paper.id, first.id, "accepted", "Solid work")
    review.submit_review(session, paper.id, second.id, "rejected")
    mailer.sent.clear()

    review.notify_authors(session, paper.id, "aggregate")

    body = mailer.sent[0]["body"]
    assert "Reviewer Grace: Solid work" in body
    assert "Reviewer Alan: No comments" in body


def test_aggregate_mode_refuses_twice_until_reset(session, make_paper, mailer):
    paper = make_paper()
    review.notify_authors(session, paper.id, "aggregate")
    with pytest.raises(AlreadyNotified):
        review.notify_authors(session, paper.id, "aggregate")

    review.reset_notification(session, paper.id)
    session.expire_all()
    assert session.get(Registration, paper.id).notification_sent == 0
    review.notify_authors(session, paper.id, "aggregate")
    assert len(mailer.sent) == 4


def test_unknown_notify_mode(session, make_paper):
    paper = make_paper()
    with pytest.raises(ValidationError):
        review.notify_authors(session, paper.id, "broadcast")
