# backend/app/errors.py
from typing import Optional


class LedgerError(Exception):
    """Base class for errors the HTTP layer turns into a JSON error response."""

    status_code = 500
    kind = "error"

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field

    def to_dict(self) -> dict:
        body = {"success": False, "error": self.kind, "message": self.message}
        if self.field:
            body["field"] = self.field
        return body


class ValidationError(LedgerError):
    status_code = 400
    kind = "validation_error"


class NotFoundError(LedgerError):
    status_code = 404
    kind = "not_found"


class ConflictError(LedgerError):
    status_code = 409
    kind = "conflict"


class AuthenticationError(LedgerError):
    status_code = 401
    kind = "unauthorized"


class StoreError(LedgerError):
    """Persistence failure (connectivity, timeout, constraint violation)."""

    status_code = 500
    kind = "store_error"
