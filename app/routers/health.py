# app/routers/health.py
"""
System health check endpoint.
Returns status of backend + DB + the event clock and today's rule day.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from app.context import AppContext, get_context
from app.database import get_db
from app.services.attendance_service import AttendanceService

router = APIRouter()


@router.get("/health", summary="System health check")
def health_check(db: Session = Depends(get_db), ctx: AppContext = Depends(get_context)):
    """
    Returns:
    - Database connectivity
    - Authoritative event clock (what check-ins will be stamped with)
    - Zones configured for today, and how many registrants are inside
    """
    now = ctx.clock.now()
    result = {
        "status": "ok",
        "event_time": now.isoformat(),
        "event_timezone": ctx.settings.EVENT_TIMEZONE,
        "database": "unknown",
        "zones_today": [],
        "inside": 0,
    }

    try:
        db.execute(text("SELECT 1"))
        result["database"] = "ok"
    except SQLAlchemyError as e:
        result["database"] = f"error: {str(e)}"
        result["status"] = "degraded"
        return result

    service = AttendanceService(db, ctx.settings)
    today = service.rules.daily_rule(now.date())
    if today is None:
        # Check-ins will be rejected with UNKNOWN_ZONE until rules are authored
        result["status"] = "no_rules"
    else:
        result["zones_today"] = [z.zone_id for z in today.zones]
    result["inside"] = sum(service.occupancy().values())
    return result
