"""Error taxonomy shared by the storage layer and the API.

Domain code raises these; `sweet_shop.api.server` maps them onto the JSON
envelope `{"status": "error", "message": ..., "errors": [...]}`.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional


class ApiError(Exception):
    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None, *, errors: Optional[List[Dict[str, Any]]] = None):
        self.message = message or self.default_message
        self.errors = errors
        super().__init__(self.message)

    def to_payload(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"status": "error", "message": self.message}
        if self.errors:
            body["errors"] = self.errors
        return body


class ValidationError(ApiError):
    status_code = 400
    default_message = "Validation failed"


class ConflictError(ApiError):
    # Duplicate unique field. Reported as a 400 like any other bad input.
    status_code = 400
    default_message = "Resource already exists"


class StockError(ApiError):
    status_code = 400
    default_message = "Not enough stock"


class AuthError(ApiError):
    status_code = 401
    default_message = "Not authorized"


class ForbiddenError(ApiError):
    status_code = 403
    default_message = "Forbidden"


class NotFoundError(ApiError):
    status_code = 404
    default_message = "Not found"


class InternalError(ApiError):
    status_code = 500
