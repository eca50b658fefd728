"""
Domain layer - Pure scheduling and assignment logic without external dependencies.
"""

from .assignment_engine import AutoAssignmentEngine
from .conflict_detector import ConflictDetector
from .models import (
    Assignment,
    AssignmentPlan,
    AutoAssignResult,
    BookingSnapshot,
    BookingStatus,
    GeoPoint,
    JobRequest,
    ProviderSnapshot,
    ProviderStatus,
    SlotResult,
    TimeInterval,
    WorkingWindow,
)
from .scoring import AssignmentScorer, AssignmentStrategy, GeoDistance, haversine_km
from .slot_generator import SlotGenerator

__all__ = [
    "Assignment",
    "AssignmentPlan",
    "AssignmentScorer",
    "AssignmentStrategy",
    "AutoAssignResult",
    "AutoAssignmentEngine",
    "BookingSnapshot",
    "BookingStatus",
    "ConflictDetector",
    "GeoDistance",
    "GeoPoint",
    "JobRequest",
    "ProviderSnapshot",
    "ProviderStatus",
    "SlotGenerator",
    "SlotResult",
    "TimeInterval",
    "WorkingWindow",
    "haversine_km",
]
