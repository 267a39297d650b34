r"""backend\app\core\errors.py

Exception taxonomy shared by the services and translated to HTTP responses
by the API layer."""

from __future__ import annotations


class InventoryError(Exception):
    """Base class for request-level failures raised by the services."""

    code = "inventory_error"
    retryable = False

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class ValidationError(InventoryError):
    """Bad input, scope violation or business-rule violation."""

    code = "invalid_request"


class NotFoundError(InventoryError):
    """A referenced entity does not exist."""

    code = "not_found"


class ReferenceCollisionError(ValidationError):
    """The store rejected a purchase order whose reference is already taken."""

    code = "reference_collision"
    retryable = True
