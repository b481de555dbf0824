"""
Main FastAPI application for the token service.
Serves the NOWPayments webhook, token claim/activation/check, admin listing and metrics.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import settings
from app.core.logging import configure_logging
from app.api.errors import register_exception_handlers
from app.api.middleware import RequestLoggingMiddleware
from app.api.routes import health, webhooks, tokens, admin
from app.utils.metrics import router as metrics_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    if settings.storage_backend == "sql" and settings.db_auto_create:
        from app.db.base import Base
        from app.db.session import engine
        from app.models import access_token, payment  # noqa: F401 - register tables

        Base.metadata.create_all(bind=engine)
    logger.info("api_started", extra={"backend": settings.storage_backend})
    yield


app = FastAPI(
    title="Token Service API",
    description="Payment-bound access tokens for NOWPayments purchases",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS
origins = settings.cors_origins_list or ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=origins != ["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)

register_exception_handlers(app)

# Routers
app.include_router(health.router, tags=["health"])
app.include_router(webhooks.router)
app.include_router(tokens.router)
app.include_router(admin.router)
app.include_router(metrics_router)
