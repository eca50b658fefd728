"""
Domain models for bookings, providers and assignment results.
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import List, Optional

import pendulum
from pendulum import DateTime

from .interval_math import MINUTES_PER_DAY, from_minutes, overlaps


class BookingStatus(str, Enum):
    """Lifecycle states of a booking as stored by the persistence layer."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_occupying(self) -> bool:
        """Every status except cancelled blocks the provider's time."""
        return self is not BookingStatus.CANCELLED


class ProviderStatus(str, Enum):
    AVAILABLE = "available"
    BUSY = "busy"
    OFFLINE = "offline"


@dataclass(frozen=True)
class TimeInterval:
    """
    Represents an immutable interval in minutes since midnight.

    Invariant: start lies within the day and end is after start. The end
    may run past midnight for late bookings.
    """
    start: int
    end: int

    def __post_init__(self):
        if not 0 <= self.start < MINUTES_PER_DAY:
            raise ValueError(f"Start minute must be between 0 and 1439, got {self.start}")
        if self.end <= self.start:
            raise ValueError(f"Start minute {self.start} must be before end minute {self.end}")

    @classmethod
    def from_start(cls, start_minute: int, duration_hours: float) -> "TimeInterval":
        """Build an interval from a start minute and a duration in hours."""
        return cls(start=start_minute, end=start_minute + round(duration_hours * 60))

    def duration_minutes(self) -> int:
        """Return the duration in minutes."""
        return self.end - self.start

    def overlaps(self, other: "TimeInterval") -> bool:
        """Check if this interval overlaps with another."""
        return overlaps(self, other)

    def __str__(self) -> str:
        end = self.end % MINUTES_PER_DAY
        return f"{from_minutes(self.start)} - {from_minutes(end)}"


@dataclass
class WorkingWindow:
    """
    Configuration for the daily service window and slot granularity.
    """
    open_hour: int = 9
    close_hour: int = 17
    slot_interval_minutes: int = 60
    min_duration_hours: float = 1
    max_duration_hours: float = 8

    def clamp_duration(self, duration_hours: float) -> float:
        """Clamp a requested duration into the allowed range."""
        return max(self.min_duration_hours, min(self.max_duration_hours, duration_hours))

    def candidate_starts(self, duration_hours: float) -> List[int]:
        """
        Start minutes from opening up to the last start that still ends by close.
        """
        first = self.open_hour * 60
        last = self.close_hour * 60 - round(duration_hours * 60)
        return list(range(first, last + 1, self.slot_interval_minutes))


@dataclass(frozen=True)
class GeoPoint:
    lat: float
    lng: float


@dataclass(frozen=True)
class BookingSnapshot:
    """
    Read-only view of a persisted booking.
    """
    id: str
    provider_id: Optional[str]
    date: date
    interval: TimeInterval
    status: BookingStatus = BookingStatus.CONFIRMED
    location: Optional[GeoPoint] = None

    @property
    def is_occupying(self) -> bool:
        return self.status.is_occupying


@dataclass(frozen=True)
class ProviderSnapshot:
    """
    Read-only view of a service provider at the time of the request.

    ``current_load`` counts the provider's active bookings for the day the
    snapshot was taken for. A missing rating means unrated and scores as 0.
    """
    id: str
    availability_status: ProviderStatus = ProviderStatus.AVAILABLE
    rating: Optional[float] = None
    service_radius_km: Optional[float] = None
    location: Optional[GeoPoint] = None
    current_load: int = 0

    def __post_init__(self):
        if self.rating is not None and not 0 <= self.rating <= 5:
            raise ValueError(f"Rating must be between 0 and 5, got {self.rating}")
        if self.current_load < 0:
            raise ValueError(f"current_load cannot be negative, got {self.current_load}")

    @property
    def is_available(self) -> bool:
        return self.availability_status is ProviderStatus.AVAILABLE

    @property
    def effective_rating(self) -> float:
        return self.rating or 0.0


@dataclass(frozen=True)
class JobRequest:
    """
    An unassigned booking waiting for a provider.
    """
    id: str
    date: date
    interval: TimeInterval
    location: Optional[GeoPoint] = None

    @property
    def scheduled_at(self) -> DateTime:
        """Scheduled start used to order jobs by urgency."""
        return pendulum.datetime(
            self.date.year, self.date.month, self.date.day
        ).add(minutes=self.interval.start)


@dataclass(frozen=True)
class SlotResult:
    """A bookable start time and how many providers could take it."""
    time: str
    available_provider_count: int


@dataclass(frozen=True)
class Assignment:
    job_id: str
    provider_id: str
    score: float
    distance_km: float


@dataclass
class AssignmentPlan:
    """
    Output of one pure planning pass over a batch of jobs.
    """
    assignments: List[Assignment] = field(default_factory=list)
    unassigned_job_ids: List[str] = field(default_factory=list)


@dataclass
class AutoAssignResult:
    """
    Outcome of executing a plan against the persistence collaborator.

    ``errors`` holds one message per failed step; a non-empty list does not
    mean the batch failed as a whole.
    """
    assignments: List[Assignment] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    total: int = 0

    @property
    def assigned(self) -> int:
        return len(self.assignments)
