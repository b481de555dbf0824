"""
Storage-agnostic records shared by every TokenStorage backend.
"""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class PaymentRecord(BaseModel):
    """Latest known state of one processor payment."""

    payment_id: str
    status: str = "unknown"
    token: str | None = None
    expires_at: datetime | None = None
    email: str | None = None
    created_at: datetime
    updated_at: datetime


class TokenRecord(BaseModel):
    """Issued access token; tiktok_username is bound once by activation."""

    token: str
    payment_id: str
    expires_at: datetime
    tiktok_username: str | None = None
    used: bool = False
    created_at: datetime

    def is_expired(self, now: datetime) -> bool:
        # Still usable at exactly expires_at
        return now > self.expires_at
