"""
PaymentLedger — последний известный статус каждого платежа процессора.

Ответственности:
- Нормализация статуса (trim + lower)
- Upsert записи: пустой статус не затирает известный, email — последний непустой
- Paid-предикат (confirmed / finished)
"""
import logging
from collections.abc import Callable
from datetime import datetime, timezone

from app.core.config import settings
from app.services.exceptions import ValidationError
from app.storage.base import TokenStorage
from app.storage.records import PaymentRecord

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_status(raw: object) -> str:
    if raw is None:
        return ""
    return str(raw).strip().lower()


def is_paid(status: str | None, paid_statuses: frozenset[str] | None = None) -> bool:
    """NOWPayments reports both "confirmed" and "finished" as terminal success."""
    statuses = paid_statuses if paid_statuses is not None else settings.paid_statuses_set
    return normalize_status(status) in statuses


class PaymentLedger:
    def __init__(
        self,
        storage: TokenStorage,
        clock: Callable[[], datetime] = utcnow,
        paid_statuses: frozenset[str] | None = None,
    ):
        self.storage = storage
        self.clock = clock
        self.paid_statuses = paid_statuses if paid_statuses is not None else settings.paid_statuses_set

    def is_paid(self, record: PaymentRecord) -> bool:
        return is_paid(record.status, self.paid_statuses)

    def upsert_status(
        self, payment_id: str, status: str | None, email: str | None = None
    ) -> PaymentRecord:
        payment_id = (payment_id or "").strip()
        if not payment_id:
            raise ValidationError("Missing payment_id")

        normalized = normalize_status(status)
        email = (email or "").strip() or None
        with self.storage.atomic():
            record = self.storage.upsert_payment(payment_id, normalized, email, self.clock())
        logger.info(
            "payment_status_updated",
            extra={"payment_id": payment_id, "status": record.status},
        )
        return record

    def lookup(self, payment_id: str) -> PaymentRecord | None:
        payment_id = (payment_id or "").strip()
        if not payment_id:
            return None
        return self.storage.get_payment(payment_id)

    def list_recent(self, limit: int = 100) -> list[PaymentRecord]:
        return self.storage.list_payments(limit)
