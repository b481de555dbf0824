from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel


def to_iso(value: datetime | None) -> str | None:
    """UTC ISO-8601 with a Z suffix, the format game clients already parse."""
    if value is None:
        return None
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


# ----- Requests: fields are loose, services validate and stringify -----


class ActivateRequest(BaseModel):
    token: Any = None
    tiktokUsername: Any = None


class CheckRequest(BaseModel):
    token: Any = None


# ----- Responses -----


class OkResponse(BaseModel):
    ok: bool = True


class ErrorResponse(BaseModel):
    ok: bool = False
    error: str
    expiresAt: str | None = None


class TokenByPaymentResponse(BaseModel):
    ok: bool = True
    token: str
    expiresAt: str
    used: bool


class ActivateResponse(BaseModel):
    ok: bool = True
    expiresAt: str


class CheckResponse(BaseModel):
    ok: bool = True
    expiresAt: str
    tiktokUsername: str | None = None
