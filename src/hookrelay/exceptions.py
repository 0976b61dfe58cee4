"""Hookrelay exception hierarchy.

Provides structured exceptions for error handling throughout the codebase.
All exceptions inherit from HookrelayError for easy catching.
"""

from __future__ import annotations


class HookrelayError(Exception):
    """Base exception for all Hookrelay errors.

    Attributes:
        message: Human-readable error description.
        code: Machine-readable error code for API responses.
    """

    code: str = "hookrelay_error"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict[str, object]:
        """Convert exception to API-friendly dictionary."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
            }
        }


class ValidationError(HookrelayError):
    """Invalid input provided.

    Attributes:
        field: The field that failed validation.
    """

    code: str = "validation_error"

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        super().__init__(f"{field}: {message}")

    def to_dict(self) -> dict[str, object]:
        """Convert exception to API-friendly dictionary."""
        return {
            "error": {
                "code": self.code,
                "field": self.field,
                "message": self.message,
            }
        }


class NotFoundError(HookrelayError):
    """Resource not found.

    Attributes:
        resource_type: Type of resource (e.g., "webhook_delivery").
        resource_id: ID of the missing resource.
    """

    code: str = "not_found"

    def __init__(self, resource_type: str, resource_id: str) -> None:
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(f"{resource_type} not found: {resource_id}")

    def to_dict(self) -> dict[str, object]:
        """Convert exception to API-friendly dictionary."""
        return {
            "error": {
                "code": self.code,
                "resource_type": self.resource_type,
                "resource_id": self.resource_id,
                "message": self.message,
            }
        }


class StorageError(HookrelayError):
    """Delivery store operation failed."""

    code: str = "storage_error"


class DeliveryError(HookrelayError):
    """A delivery attempt did not get a 2xx response.

    Attributes:
        response_code: HTTP status received, None when no response arrived.
    """

    code: str = "delivery_error"

    def __init__(self, message: str, response_code: int | None = None) -> None:
        self.response_code = response_code
        super().__init__(message)


class AuthenticationError(HookrelayError):
    """Trigger credentials are invalid or missing."""

    code: str = "authentication_error"
