# Overview: Domain error taxonomy shared by services and routes.

"""
Every failure a caller can act on is a ServiceError carrying a stable `kind`
and the HTTP status the API layer maps it to. Anything that is not a
ServiceError is a bug or an infrastructure failure and is reported as 500.
"""

from __future__ import annotations


class ServiceError(Exception):
    """Base class for caller-visible business errors."""

    kind = "Error"
    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        body = {"error": self.kind, "message": self.message}
        if self.details:
            body["details"] = self.details
        return body


class NotFoundError(ServiceError):
    kind = "NotFound"
    status_code = 404


class ProductUnavailableError(NotFoundError):
    """Product is missing or no longer active."""


class ForbiddenError(ServiceError):
    kind = "Forbidden"
    status_code = 403


class InvalidStateError(ServiceError):
    kind = "InvalidState"
    status_code = 400


class EmptyCartError(InvalidStateError):
    """Checkout attempted with no purchasable cart lines."""


class ValidationError(ServiceError, ValueError):
    """400-level input problem."""

    kind = "ValidationFailed"
    status_code = 400


class InvalidStatusError(ValidationError):
    """Order status value is not one of the recognised states."""


class ConflictError(ServiceError):
    """409-level business rule or concurrent-update conflict."""

    kind = "Conflict"
    status_code = 409


class InsufficientStockError(ConflictError):
    pass
