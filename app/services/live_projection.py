# app/services/live_projection.py
"""
Live Projection Ticker — "minutes so far" for an attendee who is still inside.

projected_minutes() is a pure read over a record snapshot: it never writes and
returns the same value for the same `now`. The `now` it receives may come from a
display-only clock; the persisted total is only ever computed at check-out from
the server-assigned check-in/check-out timestamps.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from app.services.completion_evaluator import applicable_goal, is_goal_met
from app.services.duration_accountant import POLICY_RAW, recognize
from app.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Projection:
    projected_minutes: int
    in_progress_minutes: int
    goal_minutes: Optional[int]
    projected_goal_met: bool


def projected_minutes(record, zone_rule, daily_rule, now: datetime,
                      missing_rule_policy: str = POLICY_RAW) -> int:
    return project(record, zone_rule, daily_rule, now, missing_rule_policy).projected_minutes


def project(record, zone_rule, daily_rule, now: datetime,
            missing_rule_policy: str = POLICY_RAW) -> Projection:
    total = record.total_recognized_minutes or 0
    if record.status != "INSIDE" or record.last_check_in is None:
        goal = applicable_goal(zone_rule, daily_rule)
        return Projection(total, 0, goal, bool(record.is_goal_met))

    if zone_rule is None and daily_rule is not None:
        zone_rule = daily_rule.zone(record.current_zone_id)

    in_progress = recognize(record.last_check_in, now, zone_rule,
                            record.last_check_in.date(), missing_rule_policy)
    goal = applicable_goal(zone_rule, daily_rule)
    projected = total + in_progress
    return Projection(projected, in_progress, goal, is_goal_met(projected, goal, bool(record.is_goal_met)))


class LiveProjectionTicker:
    """
    Refreshes a display on a fixed cadence from one record snapshot.
    run() loops until cancelled; cancelling the task is the teardown path.
    """

    def __init__(self, record, zone_rule=None, daily_rule=None,
                 missing_rule_policy: str = POLICY_RAW,
                 clock: Callable[[], datetime] = datetime.now):
        self.record = record
        self.zone_rule = zone_rule
        self.daily_rule = daily_rule
        self.missing_rule_policy = missing_rule_policy
        self.clock = clock

    def update(self, record, zone_rule=None, daily_rule=None):
        """Swap in a fresh snapshot (e.g. after a badge poll saw a check-out)."""
        self.record = record
        self.zone_rule = zone_rule
        self.daily_rule = daily_rule

    def tick(self, now: Optional[datetime] = None) -> Projection:
        return project(self.record, self.zone_rule, self.daily_rule,
                       now or self.clock(), self.missing_rule_policy)

    async def run(self, interval: float, on_tick: Callable[[Projection], None]):
        try:
            while True:
                on_tick(self.tick())
                await asyncio.sleep(interval)
        except asyncio.CancelledError:
            logger.debug("Live ticker stopped")
            raise
