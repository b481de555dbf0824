from datetime import datetime

from pydantic import BaseModel


class PaymentOut(BaseModel):
    payment_id: str
    status: str
    token: str | None = None
    expires_at: datetime | None = None
    email: str | None = None
    created_at: datetime
    updated_at: datetime


class TokenOut(BaseModel):
    token: str
    payment_id: str
    tiktok_username: str | None = None
    expires_at: datetime
    used: bool
    created_at: datetime
