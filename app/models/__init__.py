# Conference Attendance — Database Models
# Import all models here for SQLAlchemy discovery

from app.models.zone_rule import DailyRule, ZoneRule, BreakInterval   # noqa
from app.models.attendance_record import AttendanceRecord            # noqa
from app.models.attendance_log import AttendanceLogEntry             # noqa
from app.models.badge_token import BadgeToken                        # noqa
