"""Custom exceptions for the CampusSense application.

Errors stop at the boundary that owns them: validation errors at the
configuration API, delivery errors at the dispatcher. Only configuration
read errors can abort an evaluation cycle.
"""


class CampusSenseError(Exception):
    """Base exception for all application errors."""


class ConfigurationError(CampusSenseError):
    """Raised when threshold rules or notification preferences are unreadable."""


class ValidationError(CampusSenseError):
    """Raised when a configuration write or query parameter is malformed."""


class DatabaseError(CampusSenseError):
    """Base exception for database-related errors."""


class DatabaseNotConnectedError(DatabaseError):
    """Raised when attempting database operations without a connection."""

    def __init__(self, message: str = "Database not connected") -> None:
        super().__init__(message)


class NotificationError(CampusSenseError):
    """Base exception for notification-related errors."""


class DeliveryError(NotificationError):
    """Raised when a channel rejects a message for one recipient."""

    def __init__(
        self, message: str, *, status_code: int | None = None
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
