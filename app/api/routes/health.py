from fastapi import APIRouter, Depends, Response

from app.api.deps import get_storage
from app.services.exceptions import StorageError
from app.storage.base import TokenStorage


router = APIRouter()


@router.get("/")
def root() -> dict:
    """Liveness probe used by the hosting platform."""
    return {"ok": True}


@router.get("/health")
def health() -> dict:
    """Liveness probe - always returns 200 if app is running."""
    return {"status": "ok"}


@router.get("/ready")
def readiness(response: Response, storage: TokenStorage = Depends(get_storage)) -> dict:
    """Readiness probe - returns 503 if storage is unavailable."""
    try:
        storage.ping()
        return {"status": "ready", "backend": storage.backend_name}
    except StorageError as e:
        response.status_code = 503
        return {"status": "not_ready", "error": str(e)}
