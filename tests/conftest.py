# tests/conftest.py
"""Shared fixtures: in-memory SQLite context, a fixed event clock, and one rule day."""

import pytest
from datetime import date, datetime

from app.config import Settings
from app.context import AppContext
from app.schemas.rules import DailyRuleIn
from app.services.attendance_service import AttendanceService
from app.services.rule_service import RuleStore
from app.utils.clock import FixedClock

EVENT_DAY = date(2026, 1, 20)


def at(hour, minute=0, second=0, day=EVENT_DAY):
    return datetime(day.year, day.month, day.day, hour, minute, second)


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        DATABASE_URL="sqlite://",
        API_KEY=None,
        EVENT_END_DATE=None,
        MISSING_RULE_POLICY="raw",
        REQUIRE_ZONE_RULE_ON_CHECK_IN=True,
    )


@pytest.fixture
def context(settings):
    ctx = AppContext.from_settings(settings, clock=FixedClock(at(9, 0)))
    ctx.init_schema()
    yield ctx
    ctx.close()


@pytest.fixture
def db(context):
    session = context.session_factory()
    yield session
    session.close()


@pytest.fixture
def rule_day(db):
    """Hall A 09:00–12:00 (break 10:00–10:15, goal 50); Hall B 09:00–18:00 (lunch 12–13)."""
    body = DailyRuleIn.model_validate({
        "global_goal_minutes": 120,
        "zones": [
            {"zone_id": "hall-a", "name": "Hall A", "start_time": "09:00", "end_time": "12:00",
             "goal_minutes": 50, "breaks": [{"label": "coffee", "start_time": "10:00", "end_time": "10:15"}]},
            {"zone_id": "hall-b", "name": "Hall B", "start_time": "09:00", "end_time": "18:00",
             "breaks": [{"label": "lunch", "start_time": "12:00", "end_time": "13:00"}]},
        ],
    })
    return RuleStore(db).replace_daily_rule(EVENT_DAY, body)


@pytest.fixture
def service(db, settings, rule_day):
    return AttendanceService(db, settings)


@pytest.fixture
def enrolled(service):
    service.enroll("REG-001", at(8, 0), display_name="Kim Minji", affiliation="Seoul Clinic")
    return "REG-001"
