"""
Adapters layer - Persistence, notification and audit integrations.
"""

from .log_sinks import LoggingAuditLog, LoggingNotifier
from .memory_store import InMemoryBookingStore
from .webhook import WebhookAuditLog, WebhookNotifier

__all__ = [
    "InMemoryBookingStore",
    "LoggingAuditLog",
    "LoggingNotifier",
    "WebhookAuditLog",
    "WebhookNotifier",
]
