# app/schemas/attendance.py
from pydantic import BaseModel, Field
from datetime import datetime
from typing import Dict, List, Optional


class EnrollRequest(BaseModel):
    registration_id: str
    display_name: Optional[str] = None
    affiliation: Optional[str] = None


class CheckInRequest(BaseModel):
    zone_id: str
    scanner_id: Optional[str] = None


class CheckOutRequest(BaseModel):
    scanner_id: Optional[str] = None


class ScanRequest(BaseModel):
    zone_id: str
    mode: str = Field("AUTO", pattern="^(ENTER_ONLY|EXIT_ONLY|AUTO)$")
    scanner_id: Optional[str] = None


class BatchExitRequest(BaseModel):
    zone_id: Optional[str] = None
    scanner_id: Optional[str] = None


class AttendanceRecordOut(BaseModel):
    registration_id: str
    display_name: Optional[str]
    affiliation: Optional[str]
    status: str
    current_zone_id: Optional[str]
    last_check_in: Optional[datetime]
    last_check_out: Optional[datetime]
    total_recognized_minutes: int
    is_goal_met: bool

    class Config:
        from_attributes = True


class AttendanceLogOut(BaseModel):
    id: int
    entry_type: str
    zone_id: str
    timestamp: datetime
    method: str
    scanner_id: Optional[str]
    raw_duration_minutes: Optional[int]
    deduction_minutes: Optional[int]
    recognized_minutes: Optional[int]
    total_after: Optional[int]
    goal_met_after: Optional[bool]

    class Config:
        from_attributes = True


class TransitionOut(BaseModel):
    action: str
    record: AttendanceRecordOut
    logs: List[AttendanceLogOut]

    class Config:
        from_attributes = True


class LiveProjectionOut(BaseModel):
    registration_id: str
    status: str
    current_zone_id: Optional[str]
    current_zone_name: Optional[str] = None
    total_recognized_minutes: int
    in_progress_minutes: int
    projected_minutes: int
    goal_minutes: Optional[int]
    is_goal_met: bool
    projected_goal_met: bool
    as_of: datetime


class BatchExitOut(BaseModel):
    processed: int
    failed: int
    failed_ids: List[str]
    timestamp: datetime


class ZoneOccupancyOut(BaseModel):
    as_of: datetime
    zones: Dict[str, int]
