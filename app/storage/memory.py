"""
In-process backend: two dicts plus a payment_id -> token index behind one re-entrant lock.
State is lost on restart; use for local runs and tests.
"""
import threading
from contextlib import contextmanager
from datetime import datetime

from app.storage.base import TokenStorage
from app.storage.records import PaymentRecord, TokenRecord


class MemoryTokenStorage(TokenStorage):
    backend_name = "memory"

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._payments: dict[str, PaymentRecord] = {}
        self._tokens: dict[str, TokenRecord] = {}
        self._token_by_payment: dict[str, str] = {}

    @contextmanager
    def atomic(self):
        """
        Serializes writers but cannot roll back. If issuance fails after the status
        upsert, the payment stays paid without a token until the next paid delivery,
        which finds no token and issues one.
        """
        with self._lock:
            yield

    def ping(self) -> None:
        return None

    def get_payment(self, payment_id: str) -> PaymentRecord | None:
        with self._lock:
            record = self._payments.get(payment_id)
            return record.model_copy() if record else None

    def upsert_payment(
        self, payment_id: str, status: str, email: str | None, now: datetime
    ) -> PaymentRecord:
        with self._lock:
            record = self._payments.get(payment_id)
            if record is None:
                record = PaymentRecord(payment_id=payment_id, created_at=now, updated_at=now)
                self._payments[payment_id] = record
            if status:
                record.status = status
            if email:
                record.email = email
            record.updated_at = now
            return record.model_copy()

    def attach_token(self, payment_id: str, token: str, expires_at: datetime) -> PaymentRecord:
        with self._lock:
            record = self._payments[payment_id]
            if record.token is None:
                record.token = token
                record.expires_at = expires_at
            return record.model_copy()

    def list_payments(self, limit: int) -> list[PaymentRecord]:
        with self._lock:
            rows = sorted(self._payments.values(), key=lambda p: p.updated_at, reverse=True)
            return [p.model_copy() for p in rows[:limit]]

    def insert_token(self, record: TokenRecord) -> bool:
        with self._lock:
            if record.token in self._tokens or record.payment_id in self._token_by_payment:
                return False
            self._tokens[record.token] = record.model_copy()
            self._token_by_payment[record.payment_id] = record.token
            return True

    def get_token(self, token: str) -> TokenRecord | None:
        with self._lock:
            record = self._tokens.get(token)
            return record.model_copy() if record else None

    def latest_token_for_payment(self, payment_id: str) -> TokenRecord | None:
        # One token per payment, so the index entry is also the latest
        with self._lock:
            token = self._token_by_payment.get(payment_id)
            return self._tokens[token].model_copy() if token else None

    def bind_identity(self, token: str, identity: str) -> TokenRecord | None:
        with self._lock:
            record = self._tokens.get(token)
            if record is None:
                return None
            if record.tiktok_username is None:
                record.tiktok_username = identity
                record.used = True
            return record.model_copy()

    def list_tokens(self, limit: int) -> list[TokenRecord]:
        with self._lock:
            rows = sorted(self._tokens.values(), key=lambda t: t.created_at, reverse=True)
            return [t.model_copy() for t in rows[:limit]]
