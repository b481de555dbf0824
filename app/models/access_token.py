from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Index, String, UniqueConstraint

from app.db.base import Base


class AccessToken(Base):
    __tablename__ = "access_tokens"
    __table_args__ = (
        # One token per payment: concurrent webhook deliveries race on this constraint
        UniqueConstraint("payment_id", name="uq_access_tokens_payment"),
        Index("ix_access_tokens_payment_created", "payment_id", "created_at"),
    )

    token = Column(String(32), primary_key=True)  # 32 upper-case hex chars
    payment_id = Column(String, nullable=False)
    tiktok_username = Column(String, nullable=True)  # bound by the first activation
    expires_at = Column(DateTime(timezone=True), nullable=False)
    used = Column(Boolean, nullable=False, default=False)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
