"""
Token service domain exceptions.

Every service-layer failure derives from TokenServiceError and carries the HTTP
status the API renders it with (see app/api/errors.py).
"""
from datetime import datetime


class TokenServiceError(Exception):
    """Base exception for ledger/token/webhook errors"""

    status_code = 500
    public_message = "Internal error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.public_message)
        self.message = message or self.public_message


class ValidationError(TokenServiceError):
    """Raised when a required field is missing or empty"""

    status_code = 400
    public_message = "Invalid request"


class NotFoundError(TokenServiceError):
    """Raised when a payment or token is unknown"""

    status_code = 404
    public_message = "Not found"


class UnauthorizedError(TokenServiceError):
    """Raised when the admin key is missing or wrong"""

    status_code = 401
    public_message = "unauthorized"


class ConflictError(TokenServiceError):
    """Raised when a token is already bound to another identity"""

    status_code = 403
    public_message = "Token already bound to another username"


class TokenExpiredError(TokenServiceError):
    """
    Raised when a token is past its expiry.

    Expiry is an expected end state, so the API reports it with 200 and ok=false.
    """

    status_code = 200
    public_message = "Expired"

    def __init__(self, expires_at: datetime):
        super().__init__(self.public_message)
        self.expires_at = expires_at


class StorageError(TokenServiceError):
    """Raised when the underlying store is unavailable (not retried here)"""

    status_code = 500
    public_message = "Storage unavailable"
