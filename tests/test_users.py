"""
Account store: signup, passwords, reviewer management and admin seeding.
"""

import pytest
from sqlmodel import select

from confreview.auth import verify_password, verify_token
from confreview.db.models import NotificationOutbox, PaperReview, User
from confreview.stores import users
from confreview.workflow import assignment, review
from confreview.workflow.errors import AuthorizationError, Conflict, NotFound, ValidationError


def test_signup_returns_usable_token(session):
    result = users.signup(session, "Ada", "ada@example.org", "pw1234")
    claims = verify_token(result["token"])
    assert claims["email"] == "ada@example.org"
    assert claims["role"] == "user"


def test_signup_rules(session):
    with pytest.raises(ValidationError):
        users.signup(session, "", "ada@example.org", "pw1234")
    with pytest.raises(ValidationError, match="Invalid role"):
        users.signup(session, "Ada", "ada@example.org", "pw1234", role="wizard")
    with pytest.raises(AuthorizationError):
        users.signup(session, "Ada", "ada@example.org", "pw1234", role="reviewer")
    users.signup(session, "Ada", "ada@example.org", "pw1234")
    with pytest.raises(Conflict):
        users.signup(session, "Ada 2", "ada@example.org", "pw1234")


def test_change_password_checks_current_after_first_login(session, make_user):
    user = make_user("user", password="old-pass")
    with pytest.raises(ValidationError, match="incorrect"):
        users.change_password(session, user.id, "wrong", "new-pass")

    users.change_password(session, user.id, "old-pass", "new-pass")

    session.expire_all()
    assert verify_password("new-pass", session.get(User, user.id).password_hash)
    with pytest.raises(NotFound):
        users.change_password(session, 9999, "a", "new-pass")


def test_create_reviewer_generates_password_and_queues_credentials(session, mailer):
    result = users.create_reviewer(session, "Grace", "grace@example.org", "AI")

    assert result["emailSent"] is True
    note = session.exec(select(NotificationOutbox)).one()
    assert note.kind == "reviewer_credentials"
    password = note.get_payload()["password"]
    assert len(password) >= 8
    grace = users.get_by_email(session, "grace@example.org")
    assert grace.is_first_login == 1
    assert verify_password(password, grace.password_hash)
    assert mailer.recipients() == ["grace@example.org"]

    with pytest.raises(ValidationError):
        users.create_reviewer(session, "Alan", "alan@example.org", "")


def test_update_reviewer(session, make_user):
    grace = make_user("reviewer", email="grace@example.org")
    alan = make_user("reviewer", email="alan@example.org")
    with pytest.raises(Conflict, match="Email already exists"):
        users.update_reviewer(session, grace.id, "Grace", "alan@example.org", "AI")

    users.update_reviewer(session, grace.id, "Grace H.", "grace@example.org", "Systems")

    assert [r["name"] for r in users.list_reviewers(session)] == [alan.name, "Grace H."]
    with pytest.raises(NotFound, match="Reviewer not found"):
        users.update_reviewer(session, 9999, "X", "x@example.org", "AI")


def test_delete_reviewer_removes_reviews(session, make_user, make_paper):
    reviewer = make_user("reviewer")
    reviewer_id = reviewer.id
    paper = make_paper()
    assignment.assign(session, paper.id, reviewer_id)
    review.submit_review(session, paper.id, reviewer_id, "accepted")

    users.delete_reviewer(session, reviewer_id)

    session.expire_all()
    assert session.exec(select(PaperReview)).all() == []
    assert session.get(User, reviewer_id) is None


def test_seed_admin_is_idempotent(session):
    assert users.seed_admin(session, email="chair@example.org", password="chair-pass") is True
    assert users.seed_admin(session, email="chair@example.org", password="other") is False
    admin = users.get_by_email(session, "chair@example.org")
    assert admin.role == "admin"
    assert verify_password("chair-pass", admin.password_hash)
