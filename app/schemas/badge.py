# app/schemas/badge.py
from pydantic import BaseModel
from datetime import datetime
from typing import Optional

from app.schemas.attendance import LiveProjectionOut


class BadgeStatusOut(BaseModel):
    token: str
    registration_id: str
    status: str                                   # ACTIVE | ISSUED | EXPIRED
    badge_qr: Optional[str] = None
    attendance: Optional[LiveProjectionOut] = None  # ISSUED only
    replacement_token: Optional[str] = None         # EXPIRED only
    redirect_required: bool = False
    poll_after_seconds: float


class IssueBadgeRequest(BaseModel):
    registration_id: str


class BadgeTokenOut(BaseModel):
    token: str
    registration_id: str
    status: str
    badge_qr: Optional[str]
    created_at: datetime
    expires_at: datetime
    issued_at: Optional[datetime]
    reissued_count: int

    class Config:
        from_attributes = True
