from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from app.api.deps import get_ledger, get_token_service
from app.schemas.tokens import (
    ActivateRequest,
    ActivateResponse,
    CheckRequest,
    CheckResponse,
    ErrorResponse,
    TokenByPaymentResponse,
    to_iso,
)
from app.services.ledger.service import PaymentLedger
from app.services.tokens.service import TokenService


router = APIRouter(tags=["tokens"])

_errors = {
    400: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
}


@router.get(
    "/token-by-payment/{payment_id}",
    response_model=TokenByPaymentResponse,
    responses={404: {"model": ErrorResponse}},
)
def token_by_payment(
    payment_id: str,
    tokens: TokenService = Depends(get_token_service),
    ledger: PaymentLedger = Depends(get_ledger),
):
    """Claim page polls this until the payment is paid and the token exists."""
    token = tokens.find_latest_by_payment(payment_id)
    if token is None:
        payment = ledger.lookup(payment_id)
        content = {"ok": False, "error": "Token not issued yet" if payment else "Payment not found"}
        if payment is not None:
            content["status"] = payment.status
        return JSONResponse(status_code=404, content=content)
    return TokenByPaymentResponse(
        token=token.token,
        expiresAt=to_iso(token.expires_at),
        used=token.used,
    )


@router.post("/activate", response_model=ActivateResponse, responses=_errors)
def activate(body: ActivateRequest, tokens: TokenService = Depends(get_token_service)):
    """Bind the token to a TikTok username (first activation wins)."""
    record = tokens.activate(body.token, body.tiktokUsername)
    return ActivateResponse(expiresAt=to_iso(record.expires_at))


@router.post("/check", response_model=CheckResponse, responses=_errors)
def check(body: CheckRequest, tokens: TokenService = Depends(get_token_service)):
    record = tokens.check(body.token)
    return CheckResponse(
        expiresAt=to_iso(record.expires_at),
        tiktokUsername=record.tiktok_username,
    )
