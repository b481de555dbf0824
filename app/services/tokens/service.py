"""
TokenService — issuance, activation (binding to a TikTok username) and checks.

Binding is first-write-wins: the store only sets tiktok_username while it is null,
so two concurrent activations with different usernames cannot both succeed.
"""
import logging
from collections.abc import Callable
from datetime import datetime, timedelta

from app.core.config import settings
from app.core.logging import mask_token
from app.services.exceptions import (
    ConflictError,
    NotFoundError,
    StorageError,
    TokenExpiredError,
    ValidationError,
)
from app.services.ledger.service import utcnow
from app.services.tokens.generator import canonical_token, generate_token
from app.storage.base import TokenStorage
from app.storage.records import TokenRecord
from app.utils.metrics import metrics

logger = logging.getLogger(__name__)


class TokenService:
    def __init__(
        self,
        storage: TokenStorage,
        clock: Callable[[], datetime] = utcnow,
        generator: Callable[[], str] = generate_token,
        ttl_days: int | None = None,
        max_attempts: int | None = None,
    ):
        self.storage = storage
        self.clock = clock
        self.generator = generator
        self.ttl = timedelta(days=ttl_days if ttl_days is not None else settings.token_ttl_days)
        self.max_attempts = max_attempts or settings.token_issue_attempts

    def expiry_from(self, issued_at: datetime) -> datetime:
        return issued_at + self.ttl

    # ------------------------------------------------------------------
    # Issuance
    # ------------------------------------------------------------------

    def issue_once(self, payment_id: str, expires_at: datetime) -> TokenRecord:
        """
        Insert a fresh token for the payment and return the one that is stored.

        If another delivery already issued a token for this payment the insert is
        ignored and that token is returned. A collision on the token value itself
        is retried with a new value.
        """
        for attempt in range(1, self.max_attempts + 1):
            candidate = TokenRecord(
                token=self.generator(),
                payment_id=payment_id,
                expires_at=expires_at,
                created_at=self.clock(),
            )
            with self.storage.atomic():
                inserted = self.storage.insert_token(candidate)
                stored = self.storage.latest_token_for_payment(payment_id)
            if stored is not None:
                if inserted:
                    metrics.inc_token_issued()
                    logger.info(
                        "token_issued",
                        extra={"payment_id": payment_id, "token": mask_token(stored.token)},
                    )
                else:
                    logger.info("token_already_issued", extra={"payment_id": payment_id})
                return stored
            logger.warning(
                "token_value_collision",
                extra={"payment_id": payment_id, "attempt": attempt},
            )
        raise StorageError(f"could not issue a unique token for payment {payment_id}")

    def find_latest_by_payment(self, payment_id: str) -> TokenRecord | None:
        payment_id = (payment_id or "").strip()
        if not payment_id:
            return None
        return self.storage.latest_token_for_payment(payment_id)

    # ------------------------------------------------------------------
    # Activation / check
    # ------------------------------------------------------------------

    def _load_live(self, token: str, counter: Callable[[str], None]) -> TokenRecord:
        record = self.storage.get_token(token)
        if record is None:
            counter("not_found")
            raise NotFoundError("Invalid token")
        if record.is_expired(self.clock()):
            counter("expired")
            raise TokenExpiredError(record.expires_at)
        return record

    def activate(self, token: object, identity: object) -> TokenRecord:
        token = canonical_token(token)
        identity = "" if identity is None else str(identity).strip()
        if not token or not identity:
            metrics.inc_activation("invalid")
            raise ValidationError("token and tiktokUsername are required")

        with self.storage.atomic():
            record = self._load_live(token, metrics.inc_activation)
            if record.tiktok_username is None:
                record = self.storage.bind_identity(token, identity)
                if record is None:
                    raise StorageError("token disappeared during activation")
            if record.tiktok_username.lower() != identity.lower():
                metrics.inc_activation("conflict")
                logger.warning("token_bound_to_other_user", extra={"token": mask_token(token)})
                raise ConflictError()

        metrics.inc_activation("ok")
        logger.info("token_activated", extra={"token": mask_token(token)})
        return record

    def check(self, token: object) -> TokenRecord:
        token = canonical_token(token)
        if not token:
            metrics.inc_check("invalid")
            raise ValidationError("token is required")
        record = self._load_live(token, metrics.inc_check)
        metrics.inc_check("ok")
        return record

    def list_recent(self, limit: int = 100) -> list[TokenRecord]:
        return self.storage.list_tokens(limit)
