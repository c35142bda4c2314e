"""
confreview/db: database engine, session factory and SQLModel tables.

Usage:
    from confreview.db import get_engine, get_session
    from confreview.db.models import User, Registration, PaperAssignment, ...
"""

from confreview.db.engine import get_engine, get_session, init_db, set_engine

__all__ = ["get_engine", "get_session", "init_db", "set_engine"]
