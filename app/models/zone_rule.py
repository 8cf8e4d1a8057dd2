# app/models/zone_rule.py
"""
Per-day attendance rules authored by staff.
One DailyRule per calendar date; each owns its zones, each zone owns its breaks.
Read-only to the accounting engine.
"""

from sqlalchemy import Column, Integer, String, Date, Time, ForeignKey
from sqlalchemy.orm import relationship
from app.database import Base


class DailyRule(Base):
    __tablename__ = "daily_rules"

    id = Column(Integer, primary_key=True, autoincrement=True)
    rule_date = Column(Date, unique=True, nullable=False, index=True)
    global_goal_minutes = Column(Integer, default=0, nullable=False)
    completion_mode = Column(String(20), default="DAILY_SEPARATE", nullable=False)  # DAILY_SEPARATE | CUMULATIVE
    cumulative_goal_minutes = Column(Integer, default=0, nullable=False)

    zones = relationship(
        "ZoneRule", back_populates="daily_rule", cascade="all, delete-orphan",
        order_by="ZoneRule.position",
    )

    def zone(self, zone_id):
        for z in self.zones:
            if z.zone_id == zone_id:
                return z
        return None

    def __repr__(self):
        return f"<DailyRule {self.rule_date} zones={len(self.zones)} goal={self.global_goal_minutes}>"


class ZoneRule(Base):
    __tablename__ = "zone_rules"

    id = Column(Integer, primary_key=True, autoincrement=True)
    daily_rule_id = Column(Integer, ForeignKey("daily_rules.id", ondelete="CASCADE"), nullable=False, index=True)
    zone_id = Column(String(100), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    goal_minutes = Column(Integer, default=0, nullable=False)   # 0 = use the daily goal
    position = Column(Integer, default=0, nullable=False)

    daily_rule = relationship("DailyRule", back_populates="zones")
    breaks = relationship(
        "BreakInterval", back_populates="zone", cascade="all, delete-orphan",
        order_by="BreakInterval.start_time",
    )

    def __repr__(self):
        return f"<ZoneRule {self.zone_id} {self.start_time}-{self.end_time}>"


class BreakInterval(Base):
    __tablename__ = "break_intervals"

    id = Column(Integer, primary_key=True, autoincrement=True)
    zone_rule_id = Column(Integer, ForeignKey("zone_rules.id", ondelete="CASCADE"), nullable=False, index=True)
    label = Column(String(100))
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)

    zone = relationship("ZoneRule", back_populates="breaks")

    def __repr__(self):
        return f"<BreakInterval {self.label} {self.start_time}-{self.end_time}>"
