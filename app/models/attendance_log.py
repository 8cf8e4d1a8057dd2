# app/models/attendance_log.py
"""
Append-only ENTER/EXIT log, child of an attendance record.
EXIT rows carry the accounting breakdown that was credited at check-out.
"""

from sqlalchemy import Column, Integer, String, DateTime, Boolean, ForeignKey
from app.database import Base

ENTER = "ENTER"
EXIT = "EXIT"


class AttendanceLogEntry(Base):
    __tablename__ = "attendance_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    record_id = Column(Integer, ForeignKey("attendance_records.id"), nullable=False, index=True)
    entry_type = Column(String(10), nullable=False)          # ENTER | EXIT
    zone_id = Column(String(100), nullable=False)
    timestamp = Column(DateTime, nullable=False, index=True)
    method = Column(String(20), default="KIOSK", nullable=False)   # KIOSK | BATCH
    scanner_id = Column(String(100))
    raw_duration_minutes = Column(Integer)       # EXIT only
    deduction_minutes = Column(Integer)          # EXIT only
    recognized_minutes = Column(Integer)         # EXIT only
    total_after = Column(Integer)                # EXIT only
    goal_met_after = Column(Boolean)             # EXIT only

    def __repr__(self):
        return f"<AttendanceLogEntry {self.id} {self.entry_type} zone={self.zone_id} at={self.timestamp}>"
