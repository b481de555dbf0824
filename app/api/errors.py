"""
Maps service exceptions to the {ok: false, error} envelope.
Expired is a business outcome and goes out as 200.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from app.schemas.tokens import to_iso
from app.services.exceptions import StorageError, TokenExpiredError, TokenServiceError

logger = logging.getLogger(__name__)


def _error(status_code: int, error: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"ok": False, "error": error, **extra})


async def token_expired_handler(request: Request, exc: TokenExpiredError) -> JSONResponse:
    return _error(200, exc.message, expiresAt=to_iso(exc.expires_at))


async def service_error_handler(request: Request, exc: TokenServiceError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            "request_failed",
            exc_info=exc,
            extra={"path": request.url.path, "error": exc.message},
        )
        return _error(exc.status_code, exc.public_message)
    return _error(exc.status_code, exc.message)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return _error(400, "Invalid request body")


async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("database_error", exc_info=exc, extra={"path": request.url.path})
    return _error(500, StorageError.public_message)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(TokenExpiredError, token_expired_handler)
    app.add_exception_handler(TokenServiceError, service_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)
