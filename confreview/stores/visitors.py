"""Site visitor counter (single row, id=1)."""

from __future__ import annotations

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from confreview.db.models import VisitorCounter

COOKIE_NAME = "visited"
COOKIE_MAX_AGE = 365 * 24 * 60 * 60


def _ensure_row(session: Session) -> VisitorCounter:
    row = session.get(VisitorCounter, 1)
    if row is None:
        try:
            session.add(VisitorCounter(id=1, count=0))
            session.commit()
        except IntegrityError:
            # created by a concurrent request
            session.rollback()
        row = session.get(VisitorCounter, 1)
    return row


def get_count(session: Session) -> int:
    return _ensure_row(session).count


def increment(session: Session) -> int:
    """Atomically add one visit and return the new total."""
    _ensure_row(session)
    session.exec(
        update(VisitorCounter)
        .where(VisitorCounter.id == 1)
        .values(count=VisitorCounter.count + 1)
        .execution_options(synchronize_session=False)
    )
    session.commit()
    row = session.get(VisitorCounter, 1)
    session.refresh(row)
    return row.count
