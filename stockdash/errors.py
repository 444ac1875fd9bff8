# stockdash/errors.py
from typing import Optional


class InventoryError(Exception):
    """Base error for everything the dashboard reports to the user."""

    kind = "error"
    title = "Error"

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class AuthenticationError(InventoryError):
    kind = "authentication"
    title = "Authentication Required"


class AuthorizationError(InventoryError):
    kind = "authorization"
    title = "Permission Denied"


class InvalidDataError(InventoryError):
    kind = "validation"
    title = "Invalid Data"


class NotFoundError(InventoryError):
    kind = "not_found"
    title = "Not Found"


class ServiceUnavailableError(InventoryError):
    kind = "service"
    title = "Service Error"


class InsufficientStockError(InventoryError):
    kind = "business_rule"
    title = "Cannot Record Sale"


def error_for_status(status_code: int, message: str) -> InventoryError:
    if status_code == 401:
        return AuthenticationError(message, status_code)
    if status_code == 403:
        return AuthorizationError(message, status_code)
    if status_code == 404:
        return NotFoundError(message, status_code)
    if status_code in (400, 409, 422):
        return InvalidDataError(message, status_code)
    return ServiceUnavailableError(message, status_code)
