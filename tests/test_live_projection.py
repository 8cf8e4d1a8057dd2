# tests/test_live_projection.py
"""Live projection is a pure read; the ticker only redraws."""

import asyncio
from datetime import datetime, time
from types import SimpleNamespace

import pytest

from app.services.live_projection import LiveProjectionTicker, project, projected_minutes


def at(hour, minute=0):
    return datetime(2026, 1, 20, hour, minute)


HALL_A = SimpleNamespace(
    zone_id="hall-a", start_time=time(9, 0), end_time=time(12, 0), goal_minutes=50,
    breaks=[SimpleNamespace(start_time=time(10, 0), end_time=time(10, 15))],
)
DAILY = SimpleNamespace(
    global_goal_minutes=120, completion_mode="DAILY_SEPARATE", cumulative_goal_minutes=0,
    zone=lambda zone_id: HALL_A if zone_id == "hall-a" else None,
)


def inside(total=0, checked_in=at(9, 50), goal_met=False):
    return SimpleNamespace(status="INSIDE", current_zone_id="hall-a", last_check_in=checked_in,
                           total_recognized_minutes=total, is_goal_met=goal_met)


def outside(total=30, goal_met=False):
    return SimpleNamespace(status="OUTSIDE", current_zone_id=None, last_check_in=None,
                           total_recognized_minutes=total, is_goal_met=goal_met)


class TestProject:
    def test_inside_matches_checkout_accounting(self):
        assert projected_minutes(inside(total=30), HALL_A, DAILY, at(10, 30)) == 55

    def test_zone_resolved_from_daily_rule(self):
        result = project(inside(total=30), None, DAILY, at(10, 30))
        assert result.in_progress_minutes == 25
        assert result.goal_minutes == 50
        assert result.projected_goal_met is True

    def test_outside_is_stored_total(self):
        result = project(outside(total=30), None, DAILY, at(10, 30))
        assert (result.projected_minutes, result.in_progress_minutes, result.goal_minutes) == (30, 0, 120)

    def test_missing_rules_use_policy(self):
        assert projected_minutes(inside(), None, None, at(10, 50)) == 60
        assert projected_minutes(inside(), None, None, at(10, 50), missing_rule_policy="zero") == 0

    def test_clock_behind_check_in_adds_nothing(self):
        assert projected_minutes(inside(total=12), HALL_A, DAILY, at(9, 0)) == 12

    def test_repeatable(self):
        record = inside(total=5)
        first = project(record, HALL_A, DAILY, at(11, 0))
        second = project(record, HALL_A, DAILY, at(11, 0))
        assert first == second
        assert record.total_recognized_minutes == 5


class TestTicker:
    def test_tick_uses_clock(self):
        ticker = LiveProjectionTicker(inside(), HALL_A, DAILY, clock=lambda: at(10, 30))
        assert ticker.tick().projected_minutes == 25
        assert ticker.tick(at(11, 0)).projected_minutes == 55

    def test_update_swaps_snapshot(self):
        ticker = LiveProjectionTicker(inside(), HALL_A, DAILY, clock=lambda: at(10, 30))
        ticker.update(outside(total=40), HALL_A, DAILY)
        assert ticker.tick().projected_minutes == 40

    @pytest.mark.asyncio
    async def test_run_ticks_until_cancelled(self):
        seen = []
        ticker = LiveProjectionTicker(inside(), HALL_A, DAILY, clock=lambda: at(10, 30))
        task = asyncio.create_task(ticker.run(0.01, seen.append))
        while len(seen) < 3:
            await asyncio.sleep(0.01)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert all(p.projected_minutes == 25 for p in seen)
