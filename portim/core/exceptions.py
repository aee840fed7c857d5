"""Custom exceptions for the application."""

from typing import Any


class AppException(Exception):
    """Base exception for application errors."""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}


class ValidationError(AppException):
    """Raised when input is malformed or a required field is missing."""

    status_code = 400

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message, code="VALIDATION_ERROR", details=details)


class InvalidPathError(ValidationError):
    """Raised when an external id path expression does not parse."""

    def __init__(self, expression: str, reason: str = "malformed path expression") -> None:
        super().__init__(
            f"Invalid path expression '{expression}': {reason}",
            details={"expression": expression},
        )
        self.code = "INVALID_PATH"


class NotFoundError(AppException):
    """Raised when an interface, session, client or message does not exist."""

    status_code = 404

    def __init__(self, resource: str, resource_id: str) -> None:
        super().__init__(
            f"{resource.capitalize()} not found: {resource_id}",
            code="NOT_FOUND",
            details={"resource": resource, "id": resource_id},
        )


class ConflictError(AppException):
    """Raised when a write collides with an existing record."""

    status_code = 409

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message, code="CONFLICT", details=details)


class PreconditionError(AppException):
    """Raised when the routing state does not allow the operation."""

    status_code = 422

    def __init__(
        self,
        message: str,
        code: str = "PRECONDITION_FAILED",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code=code, details=details)


class NoControlInterfaceError(PreconditionError):
    """Raised when a session has no target to start with."""

    def __init__(self, interface_id: str) -> None:
        super().__init__(
            "Interface must have a default control interface",
            code="NO_CONTROL_INTERFACE",
            details={"interface_id": interface_id},
        )


class NoExternalIdError(PreconditionError):
    """Raised when the client identifier cannot be found in a payload."""

    def __init__(self, interface_id: str, path: str) -> None:
        super().__init__(
            "No external id found",
            code="NO_EXTERNAL_ID",
            details={"interface_id": interface_id, "path": path},
        )


class AuthenticationError(AppException):
    """Raised when credentials are missing or invalid."""

    status_code = 401

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message, code="UNAUTHORIZED")


class ForbiddenError(AppException):
    """Raised when an authenticated caller targets another project."""

    status_code = 403

    def __init__(self, message: str = "You cannot access this project") -> None:
        super().__init__(message, code="FORBIDDEN")


class ConfigurationError(AppException):
    """Raised when there's a configuration problem."""

    status_code = 500

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message, code="CONFIGURATION_ERROR", details=details)


class StorageError(AppException):
    """Raised when the storage backend fails."""

    status_code = 500

    def __init__(self, message: str, operation: str | None = None) -> None:
        super().__init__(
            message,
            code="STORAGE_ERROR",
            details={"operation": operation} if operation else {},
        )


class DeliveryError(AppException):
    """Raised when an outbound webhook call fails."""

    status_code = 502

    def __init__(
        self,
        message: str,
        url: str,
        status_code: int | None = None,
    ) -> None:
        details: dict[str, Any] = {"url": url}
        if status_code is not None:
            details["status_code"] = status_code
        super().__init__(message, code="DELIVERY_ERROR", details=details)
