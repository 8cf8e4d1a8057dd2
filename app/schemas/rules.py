# app/schemas/rules.py
from pydantic import BaseModel, Field, model_validator
from datetime import date, time
from typing import List, Optional


class BreakIn(BaseModel):
    label: Optional[str] = None
    start_time: time
    end_time: time

    @model_validator(mode="after")
    def check_window(self):
        if self.end_time <= self.start_time:
            raise ValueError("break end must be after break start")
        return self


class ZoneRuleIn(BaseModel):
    zone_id: str
    name: str
    start_time: time
    end_time: time
    goal_minutes: int = Field(0, ge=0)     # 0 = use the daily goal
    breaks: List[BreakIn] = []

    @model_validator(mode="after")
    def check_window(self):
        if self.end_time <= self.start_time:
            raise ValueError("session end must be after session start")
        return self


class DailyRuleIn(BaseModel):
    global_goal_minutes: int = Field(0, ge=0)
    completion_mode: str = Field("DAILY_SEPARATE", pattern="^(DAILY_SEPARATE|CUMULATIVE)$")
    cumulative_goal_minutes: int = Field(0, ge=0)
    zones: List[ZoneRuleIn] = []


class BreakOut(BaseModel):
    label: Optional[str]
    start_time: time
    end_time: time

    class Config:
        from_attributes = True


class ZoneRuleOut(BaseModel):
    zone_id: str
    name: str
    start_time: time
    end_time: time
    goal_minutes: int
    breaks: List[BreakOut]

    class Config:
        from_attributes = True


class DailyRuleOut(BaseModel):
    rule_date: date
    global_goal_minutes: int
    completion_mode: str
    cumulative_goal_minutes: int
    zones: List[ZoneRuleOut]

    class Config:
        from_attributes = True
