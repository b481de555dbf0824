"""
NOWPayments webhook ingestion.

The processor's payload shape is not fixed, so every logical field is read from
an ordered list of aliases. The first alias holding a non-empty value wins:

    payment id : payment_id > id > paymentId
    status     : payment_status > status > paymentStatus
    email      : email > buyer_email

State machine per payment: unknown -> any status, with a one-way latch
unpaid -> paid that issues the token. Later non-paid statuses never revoke it and
a repeated paid delivery is a successful no-op.
"""
import logging
from collections.abc import Callable, Mapping
from datetime import datetime
from typing import Any

from pydantic import BaseModel

from app.core.logging import mask_token
from app.services.exceptions import ValidationError
from app.services.ledger.service import PaymentLedger, utcnow
from app.services.tokens.service import TokenService
from app.storage.base import TokenStorage
from app.storage.records import PaymentRecord, TokenRecord
from app.utils.metrics import metrics

logger = logging.getLogger(__name__)

PAYMENT_ID_FIELDS = ("payment_id", "id", "paymentId")
STATUS_FIELDS = ("payment_status", "status", "paymentStatus")
EMAIL_FIELDS = ("email", "buyer_email")


def extract_field(payload: Mapping[str, Any], names: tuple[str, ...]) -> str | None:
    """Return the first non-empty value among `names`, stringified and stripped."""
    for name in names:
        value = payload.get(name)
        if value is None or isinstance(value, (dict, list)):
            continue
        text = str(value).strip()
        if text:
            return text
    return None


class WebhookEvent(BaseModel):
    payment_id: str
    status: str | None = None
    email: str | None = None

    model_config = {"frozen": True}


def parse_event(payload: Any) -> WebhookEvent:
    if not isinstance(payload, Mapping):
        raise ValidationError("Webhook body must be a JSON object")
    payment_id = extract_field(payload, PAYMENT_ID_FIELDS)
    if not payment_id:
        raise ValidationError("Missing payment_id")
    return WebhookEvent(
        payment_id=payment_id,
        status=extract_field(payload, STATUS_FIELDS),
        email=extract_field(payload, EMAIL_FIELDS),
    )


class IngestionResult(BaseModel):
    payment: PaymentRecord
    token: TokenRecord | None = None
    newly_issued: bool = False


class WebhookIngestionService:
    def __init__(self, storage: TokenStorage, clock: Callable[[], datetime] = utcnow):
        self.storage = storage
        self.clock = clock
        self.ledger = PaymentLedger(storage, clock=clock)
        self.tokens = TokenService(storage, clock=clock)

    def handle(self, payload: Any) -> IngestionResult:
        try:
            event = parse_event(payload)
        except ValidationError as e:
            metrics.inc_webhook("rejected")
            logger.warning("webhook_rejected", extra={"error": e.message})
            raise

        # Status upsert and issuance commit together on SQL; the memory backend heals on re-delivery
        with self.storage.atomic():
            record = self.ledger.upsert_status(event.payment_id, event.status, event.email)
            if record.token is not None or not self.ledger.is_paid(record):
                metrics.inc_webhook("updated")
                token = self.tokens.find_latest_by_payment(record.payment_id) if record.token else None
                return IngestionResult(payment=record, token=token)

            issued = self.tokens.issue_once(
                record.payment_id, self.tokens.expiry_from(self.clock())
            )
            record = self.storage.attach_token(record.payment_id, issued.token, issued.expires_at)

        metrics.inc_webhook("issued")
        logger.info(
            "payment_paid",
            extra={
                "payment_id": record.payment_id,
                "status": record.status,
                "token": mask_token(record.token),
            },
        )
        return IngestionResult(payment=record, token=issued, newly_issued=True)
