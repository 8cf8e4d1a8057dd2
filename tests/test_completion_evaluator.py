# tests/test_completion_evaluator.py
from types import SimpleNamespace

from app.services.completion_evaluator import applicable_goal, is_goal_met


def daily(global_goal=120, mode="DAILY_SEPARATE", cumulative=0):
    return SimpleNamespace(global_goal_minutes=global_goal, completion_mode=mode,
                           cumulative_goal_minutes=cumulative)


class TestApplicableGoal:
    def test_zone_goal_wins(self):
        assert applicable_goal(SimpleNamespace(goal_minutes=50), daily()) == 50

    def test_zero_zone_goal_falls_back_to_daily(self):
        assert applicable_goal(SimpleNamespace(goal_minutes=0), daily()) == 120

    def test_missing_zone_uses_daily(self):
        assert applicable_goal(None, daily(90)) == 90

    def test_cumulative_mode_overrides_zone_goal(self):
        assert applicable_goal(SimpleNamespace(goal_minutes=50), daily(mode="CUMULATIVE", cumulative=600)) == 600

    def test_cumulative_mode_without_goal_is_ignored(self):
        assert applicable_goal(SimpleNamespace(goal_minutes=50), daily(mode="CUMULATIVE", cumulative=0)) == 50

    def test_nothing_configured(self):
        assert applicable_goal(None, None) is None
        assert applicable_goal(SimpleNamespace(goal_minutes=0), daily(0)) is None


class TestIsGoalMet:
    def test_boundary_inclusive(self):
        assert is_goal_met(50, 50) is True
        assert is_goal_met(49, 50) is False

    def test_no_goal_keeps_previous_verdict(self):
        assert is_goal_met(10, None, previous=True) is True
        assert is_goal_met(10, None, previous=False) is False
