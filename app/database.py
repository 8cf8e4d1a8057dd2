# app/database.py
"""
Database engine construction, session management, and table creation.
Nothing here is created at import time: the engine and session factory are
built once per process by AppContext (see app/context.py) and handed to
request handlers through get_db().
"""

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

Base = declarative_base()


def build_engine(database_url: str) -> Engine:
    """Create the SQLAlchemy engine for a URL. In-memory SQLite shares one connection."""
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in database_url or database_url.rstrip("/") == "sqlite:":
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, echo=False, **kwargs)
    return create_engine(
        database_url,
        pool_pre_ping=True,          # Auto-reconnect if DB connection drops
        pool_size=10,
        max_overflow=20,
        echo=False,                  # Set True to log all SQL queries (debug only)
    )


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


def get_db(request: Request):
    """FastAPI dependency — yields a DB session and closes it after request."""
    db = request.app.state.context.session_factory()
    try:
        yield db
    finally:
        db.close()


def create_tables(engine: Engine):
    """
    Creates all DB tables. Safe to call multiple times.
    Import all models here so SQLAlchemy knows about them.
    """
    from app.models.zone_rule import DailyRule, ZoneRule, BreakInterval   # noqa
    from app.models.attendance_record import AttendanceRecord            # noqa
    from app.models.attendance_log import AttendanceLogEntry             # noqa
    from app.models.badge_token import BadgeToken                        # noqa

    Base.metadata.create_all(bind=engine)
