# app/services/badge_service.py
"""
Badge Issuance Gate.

Token lifecycle:
  ACTIVE  — voucher minted at enrollment; attendee shows it at the info desk
  ISSUED  — badge issued (info desk scan, or the first successful check-in)
  EXPIRED — voucher replaced by a newer one; replaced_by links to it

poll() is the read attendee badge views call every few seconds. It only reads:
an ACTIVE token past its expiry is *reported* as EXPIRED, and only reissue()
writes the transition.
"""

import secrets
import string
from dataclasses import dataclass
from datetime import datetime, time, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from app.config import Settings
from app.models.attendance_record import AttendanceRecord
from app.models.badge_token import BadgeToken, ACTIVE, ISSUED, EXPIRED
from app.services.errors import (
    TokenNotFoundError, TokenNotReissuableError, VoucherExpiredError, commit_or_raise,
)
from app.utils.logger import get_logger

logger = get_logger(__name__)

_TOKEN_ALPHABET = string.ascii_letters + string.digits
_TOKEN_LENGTH = 32
_MAX_REPLACEMENT_HOPS = 20


@dataclass
class BadgeStatus:
    token: str
    registration_id: str
    status: str
    badge_qr: Optional[str] = None
    record: Optional[AttendanceRecord] = None
    replacement_token: Optional[str] = None

    @property
    def redirect_required(self) -> bool:
        return self.status == EXPIRED and self.replacement_token is not None


def generate_token() -> str:
    return "TKN-" + "".join(secrets.choice(_TOKEN_ALPHABET) for _ in range(_TOKEN_LENGTH))


def badge_qr_for(registration_id: str) -> str:
    return f"BADGE-{registration_id}"


class BadgeService:
    def __init__(self, db: Session, settings: Settings):
        self.db = db
        self.settings = settings

    # ── Reads ────────────────────────────────────────────────────────────
    def _get(self, token: str) -> BadgeToken:
        row = self.db.query(BadgeToken).filter(BadgeToken.token == token).first()
        if not row:
            raise TokenNotFoundError(token)
        return row

    def _latest_replacement(self, row: BadgeToken) -> Optional[str]:
        current, hops = row, 0
        while current is not None and current.replaced_by and hops < _MAX_REPLACEMENT_HOPS:
            nxt = self.db.query(BadgeToken).filter(BadgeToken.token == current.replaced_by).first()
            if nxt is None:
                return current.replaced_by
            current, hops = nxt, hops + 1
        return current.token if current is not row else None

    def poll(self, token: str, now: datetime) -> BadgeStatus:
        row = self._get(token)
        status = row.status
        if status == ACTIVE and row.expires_at < now:
            status = EXPIRED

        result = BadgeStatus(token=row.token, registration_id=row.registration_id, status=status)
        if status == ISSUED:
            result.badge_qr = row.badge_qr
            result.record = (
                self.db.query(AttendanceRecord)
                .filter(AttendanceRecord.registration_id == row.registration_id)
                .first()
            )
        elif status == EXPIRED:
            result.replacement_token = self._latest_replacement(row)
        return result

    def tokens_for(self, registration_id: str):
        return (
            self.db.query(BadgeToken)
            .filter(BadgeToken.registration_id == registration_id)
            .order_by(BadgeToken.created_at.desc(), BadgeToken.id.desc())
            .all()
        )

    # ── Writes (callers commit) ──────────────────────────────────────────
    def token_expiry(self, now: datetime) -> datetime:
        if self.settings.EVENT_END_DATE:
            return datetime.combine(self.settings.EVENT_END_DATE, time(23, 59, 59)) + timedelta(hours=24)
        return now + timedelta(days=7)

    def mint(self, registration_id: str, now: datetime, reissued_count: int = 0) -> BadgeToken:
        row = BadgeToken(
            token=generate_token(),
            registration_id=registration_id,
            status=ACTIVE,
            created_at=now,
            expires_at=self.token_expiry(now),
            reissued_count=reissued_count,
        )
        self.db.add(row)
        logger.info(f"[Badge] Minted token for {registration_id} (expires {row.expires_at})")
        return row

    def activate_on_check_in(self, registration_id: str, now: datetime) -> Optional[BadgeToken]:
        """Issue the registrant's unexpired ACTIVE voucher as part of a check-in. No-op if none."""
        row = (
            self.db.query(BadgeToken)
            .filter(BadgeToken.registration_id == registration_id, BadgeToken.status == ACTIVE,
                    BadgeToken.expires_at >= now)
            .order_by(BadgeToken.created_at.desc())
            .first()
        )
        if row is None:
            return None
        self._mark_issued(row, now)
        return row

    def _mark_issued(self, row: BadgeToken, now: datetime):
        row.status = ISSUED
        row.issued_at = now
        row.badge_qr = badge_qr_for(row.registration_id)
        logger.info(f"[Badge] Issued badge {row.badge_qr}")

    # ── Staff actions (commit) ───────────────────────────────────────────
    def issue(self, registration_id: str, now: datetime) -> BadgeToken:
        """Info-desk issue. Re-issuing an already issued badge returns it unchanged (reprint)."""
        tokens = self.tokens_for(registration_id)
        issued = next((t for t in tokens if t.status == ISSUED), None)
        if issued:
            logger.info(f"[Badge] Reprint for {registration_id}")
            return issued
        active = next((t for t in tokens if t.status == ACTIVE), None)
        if active is None:
            raise TokenNotFoundError(registration_id)
        if active.expires_at < now:
            # Same cut-off poll() reports as EXPIRED; the desk must reissue first
            raise VoucherExpiredError(active.token, active.expires_at)
        self._mark_issued(active, now)
        commit_or_raise(self.db, f"issue badge for {registration_id}")
        return active

    def reissue(self, token: str, now: datetime) -> BadgeToken:
        """Expire an unissued voucher and mint its replacement. Idempotent once replaced."""
        row = self._get(token)
        if row.status == ISSUED:
            raise TokenNotReissuableError(token, row.status)
        if row.status == EXPIRED and row.replaced_by:
            replacement = self.db.query(BadgeToken).filter(BadgeToken.token == row.replaced_by).first()
            if replacement is not None:
                return replacement

        new_row = self.mint(row.registration_id, now, reissued_count=(row.reissued_count or 0) + 1)
        row.status = EXPIRED
        row.expired_at = now
        row.replaced_by = new_row.token
        commit_or_raise(self.db, f"reissue voucher for {row.registration_id}")
        logger.info(f"[Badge] Reissued voucher for {row.registration_id} (#{new_row.reissued_count})")
        return new_row
