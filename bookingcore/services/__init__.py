"""
Service layer helpers that orchestrate adapters and domain logic.
"""

from .scheduling_service import (
    AuditLogProtocol,
    BookingRepositoryProtocol,
    NotifierProtocol,
    SchedulingService,
)

__all__ = [
    "AuditLogProtocol",
    "BookingRepositoryProtocol",
    "NotifierProtocol",
    "SchedulingService",
]
