# app/models/badge_token.py
"""
Badge tokens (vouchers) bound to a registrant.
ACTIVE → ISSUED at the info desk or on first check-in.
ACTIVE → EXPIRED on reissue; replaced_by points at the new ACTIVE token.
"""

from sqlalchemy import Column, Integer, String, DateTime
from app.database import Base

ACTIVE = "ACTIVE"
ISSUED = "ISSUED"
EXPIRED = "EXPIRED"


class BadgeToken(Base):
    __tablename__ = "badge_tokens"

    id = Column(Integer, primary_key=True, autoincrement=True)
    token = Column(String(64), unique=True, nullable=False, index=True)
    registration_id = Column(String(100), nullable=False, index=True)
    status = Column(String(10), default=ACTIVE, nullable=False, index=True)
    badge_qr = Column(String(120))
    created_at = Column(DateTime, nullable=False)
    expires_at = Column(DateTime, nullable=False)
    issued_at = Column(DateTime)
    expired_at = Column(DateTime)
    replaced_by = Column(String(64))
    reissued_count = Column(Integer, default=0, nullable=False)

    def __repr__(self):
        return f"<BadgeToken {self.token[:12]}… reg={self.registration_id} status={self.status}>"
