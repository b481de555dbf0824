from fastapi import Depends
from sqlalchemy.orm import Session

from app.core.config import settings
from app.db.session import get_db
from app.services.ledger.service import PaymentLedger
from app.services.tokens.service import TokenService
from app.services.webhooks.service import WebhookIngestionService
from app.storage.base import TokenStorage
from app.storage.memory import MemoryTokenStorage
from app.storage.sql import SqlTokenStorage


_memory_storage = MemoryTokenStorage()


def get_storage(db: Session = Depends(get_db)) -> TokenStorage:
    """Request-scoped storage: the request's DB session, or the shared in-memory maps."""
    if settings.storage_backend == "memory":
        return _memory_storage
    return SqlTokenStorage(db)


def get_ledger(storage: TokenStorage = Depends(get_storage)) -> PaymentLedger:
    return PaymentLedger(storage)


def get_token_service(storage: TokenStorage = Depends(get_storage)) -> TokenService:
    return TokenService(storage)


def get_ingestion_service(storage: TokenStorage = Depends(get_storage)) -> WebhookIngestionService:
    return WebhookIngestionService(storage)
