# app/context.py
"""
Process-wide wiring for the attendance engine.
One AppContext is built at startup (or injected by tests) and disposed on
shutdown. Services receive what they need from it instead of reading
module-level globals.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Request
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from app.config import Settings
from app.database import build_engine, build_session_factory, create_tables
from app.utils.clock import EventClock
from app.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class AppContext:
    settings: Settings
    engine: Engine
    session_factory: sessionmaker
    clock: EventClock

    @classmethod
    def from_settings(cls, settings: Settings, clock: Optional[EventClock] = None) -> "AppContext":
        engine = build_engine(settings.DATABASE_URL)
        return cls(
            settings=settings,
            engine=engine,
            session_factory=build_session_factory(engine),
            clock=clock or EventClock(settings.EVENT_TIMEZONE),
        )

    def init_schema(self):
        create_tables(self.engine)

    def close(self):
        logger.info("Disposing database engine")
        self.engine.dispose()


def get_context(request: Request) -> AppContext:
    """FastAPI dependency — the process-wide AppContext built at startup."""
    return request.app.state.context
