"""Core module - configuration and utilities."""

from portim.core.config import settings
from portim.core.exceptions import (
    AppException,
    AuthenticationError,
    ConfigurationError,
    ConflictError,
    DeliveryError,
    ForbiddenError,
    InvalidPathError,
    NoControlInterfaceError,
    NoExternalIdError,
    NotFoundError,
    PreconditionError,
    StorageError,
    ValidationError,
)

__all__ = [
    "settings",
    "AppException",
    "AuthenticationError",
    "ConfigurationError",
    "ConflictError",
    "DeliveryError",
    "ForbiddenError",
    "InvalidPathError",
    "NoControlInterfaceError",
    "NoExternalIdError",
    "NotFoundError",
    "PreconditionError",
    "StorageError",
    "ValidationError",
]
