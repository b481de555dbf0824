"""
Payment model — последний известный статус платежа NOWPayments.
payment_id приходит от процессора; token проставляется один раз при первом paid-статусе.
"""
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String

from app.db.base import Base


class Payment(Base):
    __tablename__ = "payments"

    payment_id = Column(String, primary_key=True)
    status = Column(String, nullable=False, default="unknown")  # waiting / confirming / confirmed / finished / ...
    token = Column(String, nullable=True, unique=True)  # set once, never changes
    expires_at = Column(DateTime(timezone=True), nullable=True)
    email = Column(String, nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    # Stamped by the storage layer with the caller's clock; no onupdate
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
