# app/services/attendance_service.py
"""
Attendance State Machine — OUTSIDE ⇄ INSIDE per registrant.

  check_in     OUTSIDE → INSIDE(zone)           ENTER log
  check_out    INSIDE  → OUTSIDE                EXIT log with accounting breakdown
  switch_zone  INSIDE(a) → INSIDE(b)            EXIT(a) + ENTER(b) at the same instant
  scan         gate-kiosk mode dispatch (ENTER_ONLY / EXIT_ONLY / AUTO)

Every transition re-reads the record right before applying it, then writes the
record update and its log row(s) in one commit. A failed commit is rolled back
and surfaced as StorageError; nothing is retried here.

Timestamps passed in are server-assigned (AppContext.clock).
"""

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from app.config import Settings
from app.models.attendance_log import AttendanceLogEntry, ENTER, EXIT
from app.models.attendance_record import AttendanceRecord, INSIDE, OUTSIDE
from app.services.badge_service import BadgeService
from app.services.completion_evaluator import applicable_goal, is_goal_met
from app.services.duration_accountant import breakdown
from app.services.errors import (
    AlreadyCheckedInError, AlreadyInZoneError, AttendanceError, NotCheckedInError,
    RecordNotFoundError, UnknownZoneError, commit_or_raise,
)
from app.services.live_projection import Projection, project
from app.services.rule_service import RuleStore
from app.utils.logger import get_audit_logger, get_logger

logger = get_logger(__name__)
audit = get_audit_logger()

ENTER_ONLY = "ENTER_ONLY"
EXIT_ONLY = "EXIT_ONLY"
AUTO = "AUTO"
SCAN_MODES = (ENTER_ONLY, EXIT_ONLY, AUTO)


@dataclass
class TransitionResult:
    action: str
    record: AttendanceRecord
    logs: List[AttendanceLogEntry] = field(default_factory=list)


@dataclass
class BatchExitResult:
    processed: int = 0
    failed: int = 0
    failed_ids: List[str] = field(default_factory=list)


class AttendanceService:
    def __init__(self, db: Session, settings: Settings, rules: Optional[RuleStore] = None):
        self.db = db
        self.settings = settings
        self.rules = rules or RuleStore(db)
        self.badges = BadgeService(db, settings)

    # ── Reads ────────────────────────────────────────────────────────────
    def get_record(self, registration_id: str) -> AttendanceRecord:
        record = (
            self.db.query(AttendanceRecord)
            .filter(AttendanceRecord.registration_id == registration_id)
            .first()
        )
        if not record:
            raise RecordNotFoundError(registration_id)
        return record

    def _load_for_transition(self, registration_id: str) -> AttendanceRecord:
        # Fresh read so a stale precondition from a concurrent station is rejected.
        record = (
            self.db.query(AttendanceRecord)
            .filter(AttendanceRecord.registration_id == registration_id)
            .populate_existing()
            .with_for_update()
            .first()
        )
        if not record:
            raise RecordNotFoundError(registration_id)
        return record

    def logs(self, registration_id: str) -> List[AttendanceLogEntry]:
        record = self.get_record(registration_id)
        return (
            self.db.query(AttendanceLogEntry)
            .filter(AttendanceLogEntry.record_id == record.id)
            .order_by(AttendanceLogEntry.timestamp, AttendanceLogEntry.id)
            .all()
        )

    def live_projection(self, registration_id: str, now: datetime) -> Projection:
        record = self.get_record(registration_id)
        return self.project_record(record, now)

    def project_record(self, record: AttendanceRecord, now: datetime) -> Projection:
        if record.is_inside and record.last_check_in is not None:
            daily, zone = self.rules.rules_for(record.current_zone_id, record.last_check_in.date())
        else:
            daily, zone = self.rules.rules_for(None, now.date())
        return project(record, zone, daily, now, self.settings.MISSING_RULE_POLICY)

    def occupancy(self) -> dict:
        """Head count of INSIDE registrants per zone."""
        rows = (
            self.db.query(AttendanceRecord.current_zone_id)
            .filter(AttendanceRecord.status == INSIDE)
            .all()
        )
        return dict(Counter(zone_id for (zone_id,) in rows))

    # ── Enrollment ───────────────────────────────────────────────────────
    def enroll(self, registration_id: str, now: datetime,
               display_name: Optional[str] = None, affiliation: Optional[str] = None) -> AttendanceRecord:
        """Create the OUTSIDE/0 record and first voucher. Repeat calls return the existing record."""
        record = (
            self.db.query(AttendanceRecord)
            .filter(AttendanceRecord.registration_id == registration_id)
            .first()
        )
        if record:
            return record
        record = AttendanceRecord(
            registration_id=registration_id,
            display_name=display_name,
            affiliation=affiliation,
            status=OUTSIDE,
            total_recognized_minutes=0,
            is_goal_met=False,
            created_at=now,
            updated_at=now,
        )
        self.db.add(record)
        self.badges.mint(registration_id, now)
        commit_or_raise(self.db, f"enroll {registration_id}")
        logger.info(f"[Enroll] {registration_id} ({display_name or 'unnamed'})")
        return record

    # ── Transition building blocks (no commit) ───────────────────────────
    def _require_zone(self, zone_id: str, now: datetime):
        if not self.settings.REQUIRE_ZONE_RULE_ON_CHECK_IN:
            return
        _, zone = self.rules.rules_for(zone_id, now.date())
        if zone is None:
            raise UnknownZoneError(zone_id, now.date())

    def _apply_check_in(self, record: AttendanceRecord, zone_id: str, now: datetime,
                        method: str, scanner_id: Optional[str]) -> AttendanceLogEntry:
        record.status = INSIDE
        record.current_zone_id = zone_id
        record.last_check_in = now
        record.updated_at = now
        entry = AttendanceLogEntry(
            record_id=record.id, entry_type=ENTER, zone_id=zone_id, timestamp=now,
            method=method, scanner_id=scanner_id,
        )
        self.db.add(entry)
        self.badges.activate_on_check_in(record.registration_id, now)
        return entry

    def _apply_check_out(self, record: AttendanceRecord, now: datetime,
                         method: str, scanner_id: Optional[str]) -> AttendanceLogEntry:
        zone_id = record.current_zone_id
        reference_date = record.last_check_in.date()
        daily, zone = self.rules.rules_for(zone_id, reference_date)
        if zone is None:
            logger.warning(
                f"[MissingRule] No rule for zone {zone_id} on {reference_date} — "
                f"policy={self.settings.MISSING_RULE_POLICY}"
            )

        result = breakdown(record.last_check_in, now, zone, reference_date,
                           self.settings.MISSING_RULE_POLICY)
        total = (record.total_recognized_minutes or 0) + result.recognized_minutes
        goal_met = is_goal_met(total, applicable_goal(zone, daily), bool(record.is_goal_met))

        record.total_recognized_minutes = total
        record.is_goal_met = goal_met
        record.status = OUTSIDE
        record.current_zone_id = None
        record.last_check_in = None
        record.last_check_out = now
        record.updated_at = now

        entry = AttendanceLogEntry(
            record_id=record.id, entry_type=EXIT, zone_id=zone_id, timestamp=now,
            method=method, scanner_id=scanner_id,
            raw_duration_minutes=result.raw_duration_minutes,
            deduction_minutes=result.deduction_minutes,
            recognized_minutes=result.recognized_minutes,
            total_after=total,
            goal_met_after=goal_met,
        )
        self.db.add(entry)
        logger.info(
            f"[CheckOut] {record.registration_id} zone={zone_id} raw={result.raw_duration_minutes} "
            f"break={result.deduction_minutes} credited={result.recognized_minutes} "
            f"total={total} goal_met={goal_met}"
        )
        return entry

    def _committed(self, result: TransitionResult) -> TransitionResult:
        for entry in result.logs:
            credited = "" if entry.entry_type == ENTER else f" credited={entry.recognized_minutes} total={entry.total_after}"
            audit.info(
                f"{result.action} | {result.record.registration_id} | {entry.entry_type} {entry.zone_id} "
                f"| {entry.timestamp:%Y-%m-%d %H:%M:%S} | {entry.method} {entry.scanner_id or '-'}{credited}"
            )
        return result

    # ── Transitions ──────────────────────────────────────────────────────
    def check_in(self, registration_id: str, zone_id: str, now: datetime,
                 method: str = "KIOSK", scanner_id: Optional[str] = None) -> TransitionResult:
        record = self._load_for_transition(registration_id)
        if record.is_inside:
            # Different-zone moves go through switch_zone.
            raise AlreadyCheckedInError(registration_id, record.current_zone_id)
        self._require_zone(zone_id, now)

        entry = self._apply_check_in(record, zone_id, now, method, scanner_id)
        commit_or_raise(self.db, f"check-in of {registration_id}")
        logger.info(f"[CheckIn] {registration_id} → {zone_id} at {now}")
        return self._committed(TransitionResult("CHECKED_IN", record, [entry]))

    def check_out(self, registration_id: str, now: datetime,
                  method: str = "KIOSK", scanner_id: Optional[str] = None) -> TransitionResult:
        record = self._load_for_transition(registration_id)
        if not record.is_inside:
            raise NotCheckedInError(registration_id)

        entry = self._apply_check_out(record, now, method, scanner_id)
        commit_or_raise(self.db, f"check-out of {registration_id}")
        return self._committed(TransitionResult("CHECKED_OUT", record, [entry]))

    def switch_zone(self, registration_id: str, new_zone_id: str, now: datetime,
                    method: str = "KIOSK", scanner_id: Optional[str] = None) -> TransitionResult:
        record = self._load_for_transition(registration_id)
        if not record.is_inside:
            raise NotCheckedInError(registration_id)
        if record.current_zone_id == new_zone_id:
            raise AlreadyInZoneError(registration_id, new_zone_id)
        self._require_zone(new_zone_id, now)

        old_zone = record.current_zone_id
        exit_entry = self._apply_check_out(record, now, method, scanner_id)
        enter_entry = self._apply_check_in(record, new_zone_id, now, method, scanner_id)
        commit_or_raise(self.db, f"zone switch of {registration_id}")
        logger.info(f"[Switch] {registration_id} {old_zone} → {new_zone_id} at {now}")
        return self._committed(TransitionResult("ZONE_SWITCHED", record, [exit_entry, enter_entry]))

    def scan(self, registration_id: str, zone_id: str, mode: str, now: datetime,
             scanner_id: Optional[str] = None) -> TransitionResult:
        """Gate kiosk behaviour for one scan at a station bound to zone_id."""
        if mode not in SCAN_MODES:
            raise ValueError(f"Unknown scan mode {mode!r}")
        record = self._load_for_transition(registration_id)
        inside = record.is_inside

        if mode == ENTER_ONLY:
            if inside and record.current_zone_id == zone_id:
                raise AlreadyCheckedInError(registration_id, zone_id)
            if inside:
                return self.switch_zone(registration_id, zone_id, now, scanner_id=scanner_id)
            return self.check_in(registration_id, zone_id, now, scanner_id=scanner_id)

        if mode == EXIT_ONLY:
            return self.check_out(registration_id, now, scanner_id=scanner_id)

        # AUTO
        if not inside:
            return self.check_in(registration_id, zone_id, now, scanner_id=scanner_id)
        if record.current_zone_id == zone_id:
            return self.check_out(registration_id, now, scanner_id=scanner_id)
        return self.switch_zone(registration_id, zone_id, now, scanner_id=scanner_id)

    def batch_check_out(self, now: datetime, zone_id: Optional[str] = None,
                        scanner_id: Optional[str] = None) -> BatchExitResult:
        """Check out everyone still inside (optionally one zone). One commit per registrant."""
        q = self.db.query(AttendanceRecord.registration_id).filter(AttendanceRecord.status == INSIDE)
        if zone_id:
            q = q.filter(AttendanceRecord.current_zone_id == zone_id)
        registration_ids = [rid for (rid,) in q.all()]

        result = BatchExitResult()
        for rid in registration_ids:
            try:
                self.check_out(rid, now, method="BATCH", scanner_id=scanner_id)
                result.processed += 1
            except AttendanceError as e:
                self.db.rollback()
                logger.warning(f"[BatchExit] {rid} skipped: {e}")
                result.failed += 1
                result.failed_ids.append(rid)
        logger.info(f"[BatchExit] zone={zone_id or 'ALL'} processed={result.processed} failed={result.failed}")
        return result
