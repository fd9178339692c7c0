"""Service layer exception classes.

Every error a service can raise derives from ServiceError and carries the HTTP
status and client-facing message it is rendered with.

Exception Hierarchy:
    ServiceError
    ├── InvalidInput
    │   └── InvalidQuantity
    ├── NotFound
    │   └── ReferentialIntegrityViolation
    ├── Conflict
    └── StoreUnavailable
"""

from fastapi import status


class ServiceError(Exception):
    """Base exception for all service layer errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, status_code: int | None = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)


class InvalidInput(ServiceError):
    """Raised when a required field is missing or a value is out of range."""

    status_code = status.HTTP_400_BAD_REQUEST


class InvalidQuantity(InvalidInput):
    """Raised by the cost rules when a pack or line quantity is not positive."""

    def __init__(self, field: str, value):
        self.field = field
        self.value = value
        super().__init__(f"{field} must be greater than 0 (got {value})")


class NotFound(ServiceError):
    """Raised when a referenced entity does not exist."""

    status_code = status.HTTP_404_NOT_FOUND


class Conflict(ServiceError):
    """Raised on a uniqueness violation or when a delete is blocked by references."""

    status_code = status.HTTP_409_CONFLICT


class ReferentialIntegrityViolation(NotFound):
    """Raised when a foreign key points at a row that does not exist."""

    status_code = status.HTTP_404_NOT_FOUND


class StoreUnavailable(ServiceError):
    """Raised for any store error that is not a known constraint violation.

    The message is always generic; details go to the server log only.
    """

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str = "Server error"):
        super().__init__(message)
