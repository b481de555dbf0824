"""
Admin debug listing: latest payments and issued tokens.
Protected by X-Admin-Key when ADMIN_API_KEY is set.
"""
from fastapi import APIRouter, Depends, Header, Query

from app.api.deps import get_ledger, get_token_service
from app.core.config import settings
from app.schemas.admin import PaymentOut, TokenOut
from app.services.exceptions import UnauthorizedError
from app.services.ledger.service import PaymentLedger
from app.services.tokens.service import TokenService


def require_admin(x_admin_key: str | None = Header(default=None)) -> None:
    if settings.admin_api_key and x_admin_key != settings.admin_api_key:
        raise UnauthorizedError()


router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


@router.get("/payments", response_model=list[PaymentOut])
def list_payments(
    limit: int = Query(100, ge=1, le=500),
    ledger: PaymentLedger = Depends(get_ledger),
) -> list[PaymentOut]:
    return [PaymentOut(**p.model_dump()) for p in ledger.list_recent(limit)]


@router.get("/tokens", response_model=list[TokenOut])
def list_tokens(
    limit: int = Query(100, ge=1, le=500),
    tokens: TokenService = Depends(get_token_service),
) -> list[TokenOut]:
    return [TokenOut(**t.model_dump()) for t in tokens.list_recent(limit)]
