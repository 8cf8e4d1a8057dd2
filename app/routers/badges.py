# app/routers/badges.py
"""Badge Issuance Gate — attendee poll endpoint + info-desk actions."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from app.context import AppContext, get_context
from app.database import get_db
from app.models.badge_token import ISSUED
from app.routers.attendance import build_live_projection
from app.schemas.badge import BadgeStatusOut, BadgeTokenOut, IssueBadgeRequest
from app.services.attendance_service import AttendanceService
from app.services.badge_service import BadgeService

router = APIRouter()


@router.get("/badges/{token}", response_model=BadgeStatusOut, summary="Poll badge state (read-only)")
def poll_badge(token: str, db: Session = Depends(get_db), ctx: AppContext = Depends(get_context)):
    """
    Safe to call on a short interval. Never writes.
    ISSUED → includes the live attendance snapshot.
    EXPIRED → includes the replacement token when one has been minted.
    """
    now = ctx.clock.now()
    status = BadgeService(db, ctx.settings).poll(token, now)
    out = BadgeStatusOut(
        token=status.token,
        registration_id=status.registration_id,
        status=status.status,
        badge_qr=status.badge_qr,
        replacement_token=status.replacement_token,
        redirect_required=status.redirect_required,
        poll_after_seconds=ctx.settings.BADGE_POLL_SECONDS,
    )
    if status.status == ISSUED and status.record is not None:
        service = AttendanceService(db, ctx.settings)
        out.attendance = build_live_projection(service, status.record, now)
        out.poll_after_seconds = ctx.settings.LIVE_TICK_SECONDS
    return out


@router.post("/badges/issue", response_model=BadgeTokenOut, summary="Info desk — issue badge")
def issue_badge(body: IssueBadgeRequest, db: Session = Depends(get_db), ctx: AppContext = Depends(get_context)):
    return BadgeService(db, ctx.settings).issue(body.registration_id, ctx.clock.now())


@router.post("/badges/{token}/reissue", response_model=BadgeTokenOut, summary="Replace an unissued voucher")
def reissue_badge(token: str, db: Session = Depends(get_db), ctx: AppContext = Depends(get_context)):
    return BadgeService(db, ctx.settings).reissue(token, ctx.clock.now())


@router.get("/registrants/{registration_id}/badges", response_model=list[BadgeTokenOut],
            summary="Info desk — tokens for a registrant, newest first")
def list_tokens(registration_id: str, db: Session = Depends(get_db), ctx: AppContext = Depends(get_context)):
    return BadgeService(db, ctx.settings).tokens_for(registration_id)
