from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from datetime import datetime

from app.storage.records import PaymentRecord, TokenRecord


class TokenStorage(ABC):
    """
    Persistence boundary for payments and tokens.

    Writes that must be exactly-once are expressed as conflict-tolerant primitives
    (insert-or-ignore, compare-and-swap) so that concurrent webhook deliveries
    cannot issue two tokens for one payment.
    """

    backend_name = "abstract"

    @abstractmethod
    def atomic(self) -> AbstractContextManager:
        """Unit of work: everything inside commits together or not at all."""
        raise NotImplementedError

    @abstractmethod
    def ping(self) -> None:
        """Raise StorageError if the store is unreachable."""
        raise NotImplementedError

    # ----- payments -----

    @abstractmethod
    def get_payment(self, payment_id: str) -> PaymentRecord | None:
        raise NotImplementedError

    @abstractmethod
    def upsert_payment(
        self, payment_id: str, status: str, email: str | None, now: datetime
    ) -> PaymentRecord:
        """
        Create the payment (status "unknown") if missing, then apply the update.
        Empty status keeps the stored one; empty email keeps the stored one.
        """
        raise NotImplementedError

    @abstractmethod
    def attach_token(self, payment_id: str, token: str, expires_at: datetime) -> PaymentRecord:
        """Set payment.token only if it is still null; returns the stored record."""
        raise NotImplementedError

    @abstractmethod
    def list_payments(self, limit: int) -> list[PaymentRecord]:
        raise NotImplementedError

    # ----- tokens -----

    @abstractmethod
    def insert_token(self, record: TokenRecord) -> bool:
        """Insert-or-ignore. False when the token value or its payment already has a row."""
        raise NotImplementedError

    @abstractmethod
    def get_token(self, token: str) -> TokenRecord | None:
        raise NotImplementedError

    @abstractmethod
    def latest_token_for_payment(self, payment_id: str) -> TokenRecord | None:
        raise NotImplementedError

    @abstractmethod
    def bind_identity(self, token: str, identity: str) -> TokenRecord | None:
        """Bind identity only if the token is unbound; returns the stored record."""
        raise NotImplementedError

    @abstractmethod
    def list_tokens(self, limit: int) -> list[TokenRecord]:
        raise NotImplementedError
