"""
Domain-specific exception hierarchy for the booking core.
"""


class BookingCoreError(Exception):
    """Base class for all application-level errors."""


class ValidationError(BookingCoreError, ValueError):
    """Raised when caller input is missing or malformed."""


class FormatError(ValidationError):
    """Raised when a date or time string does not match its expected format."""


class SchedulingConflictError(BookingCoreError):
    """Raised when a requested interval collides with an existing commitment."""


class NoProviderAvailableError(BookingCoreError):
    """Raised when no provider can take a requested interval."""


class PersistenceError(BookingCoreError):
    """Raised when the persistence collaborator fails to store a change."""


class NotificationError(BookingCoreError):
    """Raised when a notification or audit event cannot be delivered."""
