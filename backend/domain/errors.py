"""
Custom domain exceptions for consistent error handling.

These exceptions are mapped to HTTP status codes by the exception handlers
in main.py. Storage failures carry a generic message; the cause is logged
where it is raised and never sent to clients.
"""
from fastapi import HTTPException, status


class DomainError(HTTPException):
    """Base class for all domain-specific errors."""
    def __init__(self, message: str, status_code: int = status.HTTP_400_BAD_REQUEST, details: dict | None = None):
        super().__init__(status_code=status_code, detail=message)
        self.message = message
        self.details = details or {}


class NotFoundError(DomainError):
    """Resource not found (404)."""
    def __init__(self, resource_type: str, identifier: str, details: dict | None = None):
        message = f"{resource_type} not found: {identifier}"
        super().__init__(message, status_code=status.HTTP_404_NOT_FOUND, details=details)


class ValidationError(DomainError):
    """Validation error (400)."""
    def __init__(self, message: str, field: str | None = None, details: dict | None = None):
        if field:
            message = f"Validation error on {field}: {message}"
        super().__init__(message, status_code=status.HTTP_400_BAD_REQUEST, details=details)


class MissingFieldsError(ValidationError):
    """Required order fields absent or blank (400)."""
    def __init__(self, fields: list[str]):
        self.fields = list(fields)
        super().__init__(
            f"Missing required fields: {', '.join(self.fields)}",
            details={"fields": self.fields},
        )


class InvalidStatusError(ValidationError):
    """Status outside the lifecycle allow-list (400)."""
    def __init__(self, value: str | None):
        super().__init__(f"Invalid status: {value}", details={"status": value})


class AlreadyPaidError(DomainError):
    """Payment confirmation on an order that is already paid (400)."""
    def __init__(self, order_id: str):
        super().__init__(
            "Order is already marked as paid",
            status_code=status.HTTP_400_BAD_REQUEST,
            details={"orderId": order_id},
        )


class ConflictError(DomainError):
    """Resource conflict (409)."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message, status_code=status.HTTP_409_CONFLICT, details=details)


class DuplicateIdError(ConflictError):
    """An order with this id already exists in the store (409)."""
    def __init__(self, order_id: str):
        super().__init__(f"Order already exists: {order_id}", details={"orderId": order_id})


class StorageUnavailableError(DomainError):
    """Order storage could not be read or written (503)."""
    def __init__(self, message: str = "Order storage is unavailable"):
        super().__init__(message, status_code=status.HTTP_503_SERVICE_UNAVAILABLE)
