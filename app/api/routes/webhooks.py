from typing import Any

from fastapi import APIRouter, Body, Depends

from app.api.deps import get_ingestion_service
from app.schemas.tokens import ErrorResponse, OkResponse
from app.services.webhooks.service import WebhookIngestionService


router = APIRouter(prefix="/webhook", tags=["webhooks"])


@router.post(
    "/nowpayments",
    response_model=OkResponse,
    responses={400: {"model": ErrorResponse}},
)
def nowpayments_webhook(
    payload: dict[str, Any] | None = Body(default=None),
    service: WebhookIngestionService = Depends(get_ingestion_service),
) -> OkResponse:
    """
    NOWPayments IPN callback. Delivery is at-least-once: replays are acknowledged
    with ok=true and never issue a second token.
    Signature (x-nowpayments-sig) is not verified here.
    """
    service.handle(payload or {})
    return OkResponse()
