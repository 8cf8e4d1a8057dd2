# app/routers/attendance.py
"""
Staff scan actions + attendee read models.
Mutations always use the server clock from AppContext; clients never supply
the timestamp of a check-in or check-out.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from datetime import datetime
from typing import Optional
from app.context import AppContext, get_context
from app.database import get_db
from app.models.attendance_record import AttendanceRecord
from app.schemas.attendance import (
    AttendanceLogOut, AttendanceRecordOut, BatchExitOut, BatchExitRequest, CheckInRequest,
    CheckOutRequest, EnrollRequest, LiveProjectionOut, ScanRequest, TransitionOut, ZoneOccupancyOut,
)
from app.services.attendance_service import AttendanceService

router = APIRouter()


def _service(db: Session, ctx: AppContext) -> AttendanceService:
    return AttendanceService(db, ctx.settings)


def _transition_out(result) -> TransitionOut:
    return TransitionOut.model_validate(result, from_attributes=True)


def build_live_projection(service: AttendanceService, record: AttendanceRecord, now: datetime) -> LiveProjectionOut:
    projection = service.project_record(record, now)
    zone_name = None
    if record.current_zone_id and record.last_check_in:
        _, zone = service.rules.rules_for(record.current_zone_id, record.last_check_in.date())
        zone_name = zone.name if zone else record.current_zone_id
    return LiveProjectionOut(
        registration_id=record.registration_id,
        status=record.status,
        current_zone_id=record.current_zone_id,
        current_zone_name=zone_name,
        total_recognized_minutes=record.total_recognized_minutes,
        in_progress_minutes=projection.in_progress_minutes,
        projected_minutes=projection.projected_minutes,
        goal_minutes=projection.goal_minutes,
        is_goal_met=record.is_goal_met,
        projected_goal_met=projection.projected_goal_met,
        as_of=now,
    )


# ── Enrollment ──────────────────────────────────────────────────────────────
@router.post("/registrants", response_model=AttendanceRecordOut, summary="Create attendance record + voucher")
def enroll(body: EnrollRequest, db: Session = Depends(get_db), ctx: AppContext = Depends(get_context)):
    """Called once per confirmed registration. Repeat calls return the existing record."""
    return _service(db, ctx).enroll(body.registration_id, ctx.clock.now(),
                                    display_name=body.display_name, affiliation=body.affiliation)


# ── Reads ───────────────────────────────────────────────────────────────────
@router.get("/attendance/{registration_id}", response_model=AttendanceRecordOut)
def get_record(registration_id: str, db: Session = Depends(get_db), ctx: AppContext = Depends(get_context)):
    return _service(db, ctx).get_record(registration_id)


@router.get("/attendance/{registration_id}/logs", response_model=list[AttendanceLogOut])
def get_logs(registration_id: str, db: Session = Depends(get_db), ctx: AppContext = Depends(get_context)):
    """ENTER/EXIT history ordered by timestamp."""
    return _service(db, ctx).logs(registration_id)


@router.get("/attendance/{registration_id}/live", response_model=LiveProjectionOut,
            summary="Live minutes-so-far (display only)")
def get_live(registration_id: str, at: Optional[datetime] = None,
             db: Session = Depends(get_db), ctx: AppContext = Depends(get_context)):
    """
    Projection of recognized minutes if the attendee checked out now.
    `at` lets a display supply its own clock; it is never persisted.
    """
    now = ctx.clock.to_local(at) if at else ctx.clock.now()
    service = _service(db, ctx)
    return build_live_projection(service, service.get_record(registration_id), now)


@router.get("/zones/occupancy", response_model=ZoneOccupancyOut, summary="Registrants inside, per zone")
def zone_occupancy(db: Session = Depends(get_db), ctx: AppContext = Depends(get_context)):
    return ZoneOccupancyOut(as_of=ctx.clock.now(), zones=_service(db, ctx).occupancy())


# ── Transitions ─────────────────────────────────────────────────────────────
@router.post("/attendance/batch-exit", response_model=BatchExitOut, summary="Check out everyone still inside")
def batch_exit(body: BatchExitRequest, db: Session = Depends(get_db), ctx: AppContext = Depends(get_context)):
    """Run at the end of a session/day for attendees who forgot to scan out."""
    now = ctx.clock.now()
    result = _service(db, ctx).batch_check_out(now, zone_id=body.zone_id, scanner_id=body.scanner_id)
    return BatchExitOut(processed=result.processed, failed=result.failed,
                        failed_ids=result.failed_ids, timestamp=now)


@router.post("/attendance/{registration_id}/check-in", response_model=TransitionOut)
def check_in(registration_id: str, body: CheckInRequest,
             db: Session = Depends(get_db), ctx: AppContext = Depends(get_context)):
    result = _service(db, ctx).check_in(registration_id, body.zone_id, ctx.clock.now(), scanner_id=body.scanner_id)
    return _transition_out(result)


@router.post("/attendance/{registration_id}/check-out", response_model=TransitionOut)
def check_out(registration_id: str, body: CheckOutRequest,
              db: Session = Depends(get_db), ctx: AppContext = Depends(get_context)):
    result = _service(db, ctx).check_out(registration_id, ctx.clock.now(), scanner_id=body.scanner_id)
    return _transition_out(result)


@router.post("/attendance/{registration_id}/switch-zone", response_model=TransitionOut)
def switch_zone(registration_id: str, body: CheckInRequest,
                db: Session = Depends(get_db), ctx: AppContext = Depends(get_context)):
    result = _service(db, ctx).switch_zone(registration_id, body.zone_id, ctx.clock.now(),
                                           scanner_id=body.scanner_id)
    return _transition_out(result)


@router.post("/attendance/{registration_id}/scan", response_model=TransitionOut, summary="Gate kiosk scan")
def scan(registration_id: str, body: ScanRequest,
         db: Session = Depends(get_db), ctx: AppContext = Depends(get_context)):
    """ENTER_ONLY / EXIT_ONLY / AUTO behaviour of a kiosk bound to one zone."""
    result = _service(db, ctx).scan(registration_id, body.zone_id, body.mode, ctx.clock.now(),
                                    scanner_id=body.scanner_id)
    return _transition_out(result)
