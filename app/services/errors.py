# app/services/errors.py
"""
Error taxonomy for the attendance engine.
Every error carries a stable code and a user-safe message that staff
operators can read off the scanner screen.
"""

from enum import Enum

from sqlalchemy.exc import SQLAlchemyError

from app.utils.logger import get_logger

logger = get_logger(__name__)


class ErrorCode(Enum):
    ALREADY_CHECKED_IN = "ALREADY_CHECKED_IN"
    NOT_CHECKED_IN = "NOT_CHECKED_IN"
    ALREADY_IN_ZONE = "ALREADY_IN_ZONE"
    UNKNOWN_ZONE = "UNKNOWN_ZONE"
    RECORD_NOT_FOUND = "RECORD_NOT_FOUND"
    TOKEN_NOT_FOUND = "TOKEN_NOT_FOUND"
    TOKEN_NOT_REISSUABLE = "TOKEN_NOT_REISSUABLE"
    VOUCHER_EXPIRED = "VOUCHER_EXPIRED"
    INVALID_RULE = "INVALID_RULE"
    STORAGE_FAILURE = "STORAGE_FAILURE"


class AttendanceError(Exception):
    """Base error with code and user-safe message."""

    code: ErrorCode = ErrorCode.STORAGE_FAILURE

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class PreconditionViolation(AttendanceError):
    """A transition was requested from the wrong state. Nothing was written."""


class AlreadyCheckedInError(PreconditionViolation):
    code = ErrorCode.ALREADY_CHECKED_IN

    def __init__(self, registration_id: str, zone_id: str):
        super().__init__(f"{registration_id} is already checked in to {zone_id}")
        self.registration_id = registration_id
        self.zone_id = zone_id


class NotCheckedInError(PreconditionViolation):
    code = ErrorCode.NOT_CHECKED_IN

    def __init__(self, registration_id: str):
        super().__init__(f"{registration_id} is not checked in")
        self.registration_id = registration_id


class AlreadyInZoneError(PreconditionViolation):
    code = ErrorCode.ALREADY_IN_ZONE

    def __init__(self, registration_id: str, zone_id: str):
        super().__init__(f"{registration_id} is already in zone {zone_id}")
        self.registration_id = registration_id
        self.zone_id = zone_id


class UnknownZoneError(PreconditionViolation):
    code = ErrorCode.UNKNOWN_ZONE

    def __init__(self, zone_id: str, rule_date):
        super().__init__(f"Zone {zone_id} is not configured for {rule_date}")
        self.zone_id = zone_id
        self.rule_date = rule_date


class RecordNotFoundError(AttendanceError):
    code = ErrorCode.RECORD_NOT_FOUND

    def __init__(self, registration_id: str):
        super().__init__(f"No attendance record for {registration_id}")
        self.registration_id = registration_id


class TokenNotFoundError(AttendanceError):
    code = ErrorCode.TOKEN_NOT_FOUND

    def __init__(self, token: str):
        super().__init__("Badge token not found")
        self.token = token


class TokenNotReissuableError(AttendanceError):
    code = ErrorCode.TOKEN_NOT_REISSUABLE

    def __init__(self, token: str, status: str):
        super().__init__(f"Token in state {status} cannot be reissued")
        self.token = token
        self.status = status


class VoucherExpiredError(AttendanceError):
    code = ErrorCode.VOUCHER_EXPIRED

    def __init__(self, token: str, expires_at):
        super().__init__(f"Voucher expired at {expires_at}; reissue it before issuing a badge")
        self.token = token
        self.expires_at = expires_at


class InvalidRuleError(AttendanceError):
    code = ErrorCode.INVALID_RULE


class StorageError(AttendanceError):
    """The write for a transition failed. The session was rolled back; nothing is assumed written."""

    code = ErrorCode.STORAGE_FAILURE


def commit_or_raise(db, operation: str):
    """Commit the pending unit of work, or roll it back and raise StorageError."""
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"[Storage] {operation} failed: {e}", exc_info=True)
        raise StorageError(f"{operation} could not be saved") from e
