# app/services/completion_evaluator.py
"""Goal resolution and the goal-met check. Both are pure."""

from typing import Optional

CUMULATIVE = "CUMULATIVE"
DAILY_SEPARATE = "DAILY_SEPARATE"


def applicable_goal(zone_rule, daily_rule) -> Optional[int]:
    """
    Goal for the zone a stay was credited in.
    CUMULATIVE days with a positive cumulative goal use it; otherwise a positive
    zone goal wins over the daily goal. None means no goal is configured.
    """
    if daily_rule is not None:
        if daily_rule.completion_mode == CUMULATIVE and (daily_rule.cumulative_goal_minutes or 0) > 0:
            return daily_rule.cumulative_goal_minutes
    if zone_rule is not None and (zone_rule.goal_minutes or 0) > 0:
        return zone_rule.goal_minutes
    if daily_rule is not None and (daily_rule.global_goal_minutes or 0) > 0:
        return daily_rule.global_goal_minutes
    return None


def is_goal_met(total_minutes: int, goal: Optional[int], previous: bool = False) -> bool:
    # Boundary inclusive. With no goal configured the previous verdict stands.
    if goal is None:
        return previous
    return total_minutes >= goal
