# app/services/rule_service.py
"""
Zone Rule Store — per-day zone windows, breaks and goals.
Lookups are cached for the lifetime of one RuleStore (one request/session),
so a transition always sees a single consistent view of the rules.
"""

from datetime import date
from typing import Dict, Optional, Tuple

from sqlalchemy.orm import Session, selectinload

from app.models.zone_rule import DailyRule, ZoneRule, BreakInterval
from app.services.errors import InvalidRuleError, commit_or_raise
from app.utils.logger import get_logger

logger = get_logger(__name__)


class RuleStore:
    def __init__(self, db: Session):
        self.db = db
        self._cache: Dict[date, Optional[DailyRule]] = {}

    def daily_rule(self, rule_date: date) -> Optional[DailyRule]:
        if rule_date not in self._cache:
            self._cache[rule_date] = (
                self.db.query(DailyRule)
                .options(selectinload(DailyRule.zones).selectinload(ZoneRule.breaks))
                .filter(DailyRule.rule_date == rule_date)
                .first()
            )
        return self._cache[rule_date]

    def rules_for(self, zone_id: Optional[str], rule_date: date) -> Tuple[Optional[DailyRule], Optional[ZoneRule]]:
        """(daily rule, zone rule) for a zone on a date. Either may be None."""
        daily = self.daily_rule(rule_date)
        if daily is None or zone_id is None:
            return daily, None
        return daily, daily.zone(zone_id)

    def replace_daily_rule(self, rule_date: date, body) -> DailyRule:
        """Replace the whole rule for a date. body is a DailyRuleIn schema."""
        seen = set()
        for z in body.zones:
            if z.zone_id in seen:
                raise InvalidRuleError(f"Zone {z.zone_id} appears twice on {rule_date}")
            seen.add(z.zone_id)

        existing = self.db.query(DailyRule).filter(DailyRule.rule_date == rule_date).first()
        if existing:
            self.db.delete(existing)
            self.db.flush()

        rule = DailyRule(
            rule_date=rule_date,
            global_goal_minutes=body.global_goal_minutes,
            completion_mode=body.completion_mode,
            cumulative_goal_minutes=body.cumulative_goal_minutes,
        )
        for position, z in enumerate(body.zones):
            rule.zones.append(ZoneRule(
                zone_id=z.zone_id,
                name=z.name,
                start_time=z.start_time,
                end_time=z.end_time,
                goal_minutes=z.goal_minutes,
                position=position,
                breaks=[BreakInterval(label=b.label, start_time=b.start_time, end_time=b.end_time)
                        for b in z.breaks],
            ))
        self.db.add(rule)
        commit_or_raise(self.db, f"replace rules for {rule_date}")
        self._cache.pop(rule_date, None)
        logger.info(f"[Rules] {rule_date}: {len(rule.zones)} zones, global goal {rule.global_goal_minutes} min")
        return rule
