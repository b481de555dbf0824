"""
SQLAlchemy backend (PostgreSQL in production, SQLite locally).

Exactly-once guarantees come from the tables, not from the request handler:
- access_tokens.token is the primary key and access_tokens.payment_id is unique,
  inserts run inside a savepoint and an IntegrityError means "someone else won";
- payments.token and access_tokens.tiktok_username are written with
  UPDATE ... WHERE <column> IS NULL (compare-and-swap).
"""
import logging
from contextlib import contextmanager
from datetime import datetime, timezone

from sqlalchemy import insert, text, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.access_token import AccessToken
from app.models.payment import Payment
from app.services.exceptions import StorageError
from app.storage.base import TokenStorage
from app.storage.records import PaymentRecord, TokenRecord

logger = logging.getLogger(__name__)


def _aware(value: datetime | None) -> datetime | None:
    # SQLite drops tzinfo; everything is stored in UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _payment_record(row: Payment) -> PaymentRecord:
    return PaymentRecord(
        payment_id=row.payment_id,
        status=row.status,
        token=row.token,
        expires_at=_aware(row.expires_at),
        email=row.email,
        created_at=_aware(row.created_at),
        updated_at=_aware(row.updated_at),
    )


def _token_record(row: AccessToken) -> TokenRecord:
    return TokenRecord(
        token=row.token,
        payment_id=row.payment_id,
        expires_at=_aware(row.expires_at),
        tiktok_username=row.tiktok_username,
        used=bool(row.used),
        created_at=_aware(row.created_at),
    )


class SqlTokenStorage(TokenStorage):
    backend_name = "sql"

    def __init__(self, db: Session):
        self.db = db
        self._depth = 0

    @contextmanager
    def _errors(self):
        try:
            yield
        except StorageError:
            raise
        except SQLAlchemyError as e:
            raise StorageError(f"database error: {e.__class__.__name__}") from e

    @contextmanager
    def atomic(self):
        """Commit on the outermost exit, rollback on any exception."""
        self._depth += 1
        try:
            yield
            if self._depth == 1:
                with self._errors():
                    self.db.commit()
        except Exception:
            if self._depth == 1:
                self.db.rollback()
            raise
        finally:
            self._depth -= 1

    def ping(self) -> None:
        with self._errors():
            self.db.execute(text("SELECT 1"))

    # ------------------------------------------------------------------
    # Payments
    # ------------------------------------------------------------------

    def _locked_payment(self, payment_id: str) -> Payment | None:
        return (
            self.db.query(Payment)
            .filter(Payment.payment_id == payment_id)
            .with_for_update()
            .one_or_none()
        )

    def get_payment(self, payment_id: str) -> PaymentRecord | None:
        with self._errors():
            row = self.db.get(Payment, payment_id)
            return _payment_record(row) if row else None

    def upsert_payment(
        self, payment_id: str, status: str, email: str | None, now: datetime
    ) -> PaymentRecord:
        with self._errors():
            row = self._locked_payment(payment_id)
            if row is None:
                try:
                    with self.db.begin_nested():
                        row = Payment(
                            payment_id=payment_id,
                            status="unknown",
                            created_at=now,
                            updated_at=now,
                        )
                        self.db.add(row)
                        self.db.flush()
                except IntegrityError:
                    # Concurrent first delivery created it
                    logger.info("payment_insert_race", extra={"payment_id": payment_id})
                    row = self._locked_payment(payment_id)
                    if row is None:
                        raise StorageError("payment row vanished after insert conflict")
            if status:
                row.status = status
            if email:
                row.email = email
            row.updated_at = now
            self.db.flush()
            return _payment_record(row)

    def attach_token(self, payment_id: str, token: str, expires_at: datetime) -> PaymentRecord:
        with self._errors():
            self.db.execute(
                update(Payment)
                .where(Payment.payment_id == payment_id, Payment.token.is_(None))
                .values(token=token, expires_at=expires_at)
                .execution_options(synchronize_session=False)
            )
            row = self.db.get(Payment, payment_id)
            if row is None:
                raise StorageError(f"payment {payment_id} missing while attaching token")
            self.db.refresh(row)
            return _payment_record(row)

    def list_payments(self, limit: int) -> list[PaymentRecord]:
        with self._errors():
            rows = (
                self.db.query(Payment)
                .order_by(Payment.updated_at.desc())
                .limit(limit)
                .all()
            )
            return [_payment_record(r) for r in rows]

    # ------------------------------------------------------------------
    # Tokens
    # ------------------------------------------------------------------

    def insert_token(self, record: TokenRecord) -> bool:
        with self._errors():
            try:
                # Core INSERT: the database constraint decides, not the identity map
                with self.db.begin_nested():
                    self.db.execute(
                        insert(AccessToken).values(
                            token=record.token,
                            payment_id=record.payment_id,
                            tiktok_username=record.tiktok_username,
                            expires_at=record.expires_at,
                            used=record.used,
                            created_at=record.created_at,
                        )
                    )
                return True
            except IntegrityError:
                return False

    def get_token(self, token: str) -> TokenRecord | None:
        with self._errors():
            row = self.db.get(AccessToken, token)
            return _token_record(row) if row else None

    def latest_token_for_payment(self, payment_id: str) -> TokenRecord | None:
        with self._errors():
            row = (
                self.db.query(AccessToken)
                .filter(AccessToken.payment_id == payment_id)
                .order_by(AccessToken.created_at.desc())
                .first()
            )
            return _token_record(row) if row else None

    def bind_identity(self, token: str, identity: str) -> TokenRecord | None:
        with self._errors():
            self.db.execute(
                update(AccessToken)
                .where(AccessToken.token == token, AccessToken.tiktok_username.is_(None))
                .values(tiktok_username=identity, used=True)
                .execution_options(synchronize_session=False)
            )
            row = self.db.get(AccessToken, token)
            if row is None:
                return None
            self.db.refresh(row)
            return _token_record(row)

    def list_tokens(self, limit: int) -> list[TokenRecord]:
        with self._errors():
            rows = (
                self.db.query(AccessToken)
                .order_by(AccessToken.created_at.desc())
                .limit(limit)
                .all()
            )
            return [_token_record(r) for r in rows]
