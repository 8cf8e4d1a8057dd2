# app/models/attendance_record.py
"""
Attendance state table — one row per registrant.
status == INSIDE exactly when current_zone_id and last_check_in are both set.
Mutated only by attendance_service; never deleted during the event.
"""

from sqlalchemy import Column, Integer, String, DateTime, Boolean
from app.database import Base

INSIDE = "INSIDE"
OUTSIDE = "OUTSIDE"


class AttendanceRecord(Base):
    __tablename__ = "attendance_records"

    id = Column(Integer, primary_key=True, autoincrement=True)
    registration_id = Column(String(100), unique=True, nullable=False, index=True)
    display_name = Column(String(200))
    affiliation = Column(String(200))
    status = Column(String(10), default=OUTSIDE, nullable=False, index=True)
    current_zone_id = Column(String(100), index=True)      # set iff INSIDE
    last_check_in = Column(DateTime)                        # set iff INSIDE
    last_check_out = Column(DateTime)
    total_recognized_minutes = Column(Integer, default=0, nullable=False)
    is_goal_met = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime)
    updated_at = Column(DateTime)

    @property
    def is_inside(self) -> bool:
        return self.status == INSIDE

    def __repr__(self):
        return (f"<AttendanceRecord {self.registration_id} {self.status} "
                f"zone={self.current_zone_id} total={self.total_recognized_minutes}>")
