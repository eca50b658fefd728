"""
Application service exposing availability, conflict checks and auto-assignment.

The service validates caller input, pulls fresh snapshots through a
repository protocol and delegates the actual decisions to the pure domain
objects. The only side effects live in ``auto_assign``'s execution phase,
where each planned assignment is written back, announced and audited as an
independent unit of work.
"""

from __future__ import annotations

import logging
import math
from datetime import date
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence

import pendulum
from pendulum import DateTime

from ..domain.assignment_engine import AutoAssignmentEngine
from ..domain.conflict_detector import ConflictDetector
from ..domain.exceptions import (
    NoProviderAvailableError,
    SchedulingConflictError,
    ValidationError,
)
from ..domain.interval_math import parse_date, to_minutes
from ..domain.models import (
    Assignment,
    AutoAssignResult,
    BookingSnapshot,
    BookingStatus,
    JobRequest,
    ProviderSnapshot,
    SlotResult,
    TimeInterval,
    WorkingWindow,
)
from ..domain.scoring import AssignmentScorer, AssignmentStrategy, GeoDistance
from ..domain.slot_generator import SlotGenerator

logger = logging.getLogger(__name__)


AUTO_ASSIGN_ACTION = "auto_assign_provider"

NON_RESCHEDULABLE = {
    BookingStatus.CANCELLED: "Cannot reschedule a cancelled booking",
    BookingStatus.COMPLETED: "Cannot reschedule a completed booking",
    BookingStatus.IN_PROGRESS: "Cannot reschedule a booking that is in progress",
}


class BookingRepositoryProtocol(Protocol):
    """Persistence collaborator supplying snapshots and storing assignments."""

    def list_providers(self, load_date: Optional[date] = None) -> List[ProviderSnapshot]:
        """Return all providers, with current_load counted for load_date."""

    def list_bookings(
        self,
        on_date: date,
        provider_ids: Optional[Sequence[str]] = None,
    ) -> List[BookingSnapshot]:
        """Return the bookings of a day, optionally for some providers only."""

    def get_booking(self, booking_id: str) -> Optional[BookingSnapshot]:
        """Return one booking or None."""

    def list_unassigned_jobs(self, job_ids: Optional[Sequence[str]] = None) -> List[JobRequest]:
        """Return pending bookings that have no provider yet."""

    def assign_provider(self, job_id: str, provider_id: str) -> None:
        """Attach a provider to a job and confirm it."""

    def mark_provider_busy(self, provider_id: str) -> None:
        """Flip a provider's availability to busy."""


class NotifierProtocol(Protocol):
    def notify_assignment(self, job_id: str, provider_id: str) -> None:
        """Tell the provider about a newly assigned job."""


class AuditLogProtocol(Protocol):
    def record(self, action: str, resource_id: str, metadata: Dict[str, Any]) -> None:
        """Store an audit event."""


class SchedulingService:
    """
    Orchestrates snapshot retrieval and the scheduling domain logic.

    Dependency inversion toward protocols keeps the persistence layer,
    notification delivery and audit trail pluggable, and lets tests use
    simple stubs.
    """

    def __init__(
        self,
        repository: BookingRepositoryProtocol,
        notifier: NotifierProtocol,
        audit_log: AuditLogProtocol,
        working_window: Optional[WorkingWindow] = None,
        timezone: str = "America/New_York",
        default_strategy: AssignmentStrategy = AssignmentStrategy.BALANCED,
        fallback_distance_km: float = 5.0,
        default_duration_hours: float = 2,
        clock: Optional[Callable[[], DateTime]] = None,
    ) -> None:
        self._repository = repository
        self._notifier = notifier
        self._audit_log = audit_log
        self._working_window = working_window or WorkingWindow()
        self._timezone = timezone
        self._default_strategy = default_strategy
        self._fallback_distance_km = fallback_distance_km
        self._default_duration_hours = default_duration_hours
        self._clock = clock or (lambda: pendulum.now(self._timezone))
        self._conflicts = ConflictDetector()
        self._slots = SlotGenerator(self._working_window, self._conflicts)

    # Read path

    def get_availability(
        self,
        date_str: str,
        duration_hours: Optional[float] = None,
        provider_id: Optional[str] = None,
    ) -> List[SlotResult]:
        """
        Return bookable start times for a day.

        Raises:
            FormatError: If the date is not ``YYYY-MM-DD``
            ValidationError: If the duration is not a number
        """
        target_date = parse_date(date_str)
        duration = self._resolve_duration(duration_hours)

        providers = self._repository.list_providers()
        provider_ids = [p.id for p in providers if p.is_available]
        if provider_id is not None:
            provider_ids = [pid for pid in provider_ids if pid == provider_id]

        if not provider_ids:
            return []

        bookings = self._repository.list_bookings(target_date, provider_ids)

        return self._slots.generate(
            target_date=target_date,
            duration_hours=duration,
            providers=providers,
            bookings=bookings,
            provider_id=provider_id,
            now=self._clock(),
        )

    def check_conflict(
        self,
        provider_id: str,
        date_str: str,
        time_str: str,
        duration_hours: Optional[float] = None,
        exclude_booking_id: Optional[str] = None,
    ) -> bool:
        """
        Return True if the provider is already booked over the requested time.
        """
        if not provider_id:
            raise ValidationError("provider_id is required")

        target_date = parse_date(date_str)
        candidate = TimeInterval.from_start(
            to_minutes(time_str), self._resolve_duration(duration_hours)
        )

        bookings = self._repository.list_bookings(target_date, [provider_id])
        provider_bookings = [
            b for b in bookings
            if b.provider_id == provider_id and b.date == target_date
        ]

        return self._conflicts.has_conflict(
            provider_bookings, candidate, exclude_booking_id=exclude_booking_id
        )

    def validate_reschedule(
        self,
        booking_id: str,
        date_str: str,
        time_str: str,
        duration_hours: Optional[float] = None,
    ) -> TimeInterval:
        """
        Check that a booking may move to a new date and time.

        Returns:
            The interval the booking would occupy after the move

        Raises:
            ValidationError: If input is malformed, the booking is unknown or
                its status does not allow rescheduling
            SchedulingConflictError: If the time is in the past or the
                assigned provider is busy then
        """
        if not booking_id:
            raise ValidationError("booking_id is required")

        target_date = parse_date(date_str)
        start = to_minutes(time_str)

        booking = self._repository.get_booking(booking_id)
        if booking is None:
            raise ValidationError(f"Booking not found: {booking_id}")

        if booking.status in NON_RESCHEDULABLE:
            raise ValidationError(NON_RESCHEDULABLE[booking.status])

        self._reject_past_start(target_date, start)

        if duration_hours is None:
            duration = booking.interval.duration_minutes() / 60
        else:
            duration = self._resolve_duration(duration_hours)
        candidate = TimeInterval.from_start(start, duration)

        if booking.provider_id:
            bookings = self._repository.list_bookings(target_date, [booking.provider_id])
            provider_bookings = [
                b for b in bookings
                if b.provider_id == booking.provider_id and b.date == target_date
            ]
            clashes = self._conflicts.conflicting_bookings(
                provider_bookings, candidate, exclude_booking_id=booking.id
            )
            if clashes:
                logger.info(
                    "Reschedule of %s to %s %s blocked by %s",
                    booking.id, date_str, time_str, [b.id for b in clashes]
                )
                raise SchedulingConflictError(
                    "Provider is not available at the requested time"
                )

        return candidate

    def find_instant_provider(
        self,
        date_str: str,
        time_str: str,
        duration_hours: Optional[float] = None,
    ) -> str:
        """
        Pick the first available provider who is free for the requested time.

        Raises:
            SchedulingConflictError: If the requested time is already past
            NoProviderAvailableError: If nobody can take the booking
        """
        target_date = parse_date(date_str)
        start = to_minutes(time_str)
        self._reject_past_start(target_date, start)

        candidate = TimeInterval.from_start(start, self._resolve_duration(duration_hours))

        provider_ids = [p.id for p in self._repository.list_providers() if p.is_available]
        if not provider_ids:
            raise NoProviderAvailableError("No providers available")

        bookings = self._repository.list_bookings(target_date, provider_ids)
        provider_id = self._conflicts.find_free_provider(
            provider_ids, bookings, target_date, candidate
        )
        if provider_id is None:
            raise NoProviderAvailableError("Requested time not available")

        return provider_id

    # Write path

    def auto_assign(
        self,
        job_ids: Optional[Sequence[str]] = None,
        strategy: "str | AssignmentStrategy | None" = None,
        dry_run: bool = False,
    ) -> AutoAssignResult:
        """
        Plan and execute a batch assignment.

        Planning is pure. Execution writes each assignment on its own; a
        failure is recorded in ``errors`` and the remaining assignments still
        run. With ``dry_run`` the plan is returned without touching anything.
        """
        resolved = AssignmentStrategy.parse(strategy) if strategy else self._default_strategy

        jobs = self._repository.list_unassigned_jobs(list(job_ids) if job_ids else None)
        if not jobs:
            logger.info("No unassigned jobs found")
            return AutoAssignResult()

        providers = self._repository.list_providers(load_date=self._clock().date())
        bookings: List[BookingSnapshot] = []
        for job_date in sorted({job.date for job in jobs}):
            bookings.extend(self._repository.list_bookings(job_date))

        engine = AutoAssignmentEngine(
            AssignmentScorer(resolved, GeoDistance(self._fallback_distance_km)),
            self._conflicts,
        )
        plan = engine.plan(jobs, providers, job_ids=job_ids, bookings=bookings)

        result = AutoAssignResult(total=len(jobs))
        if dry_run:
            result.assignments = list(plan.assignments)
            return result

        for assignment in plan.assignments:
            if self._execute(assignment, resolved, result.errors):
                result.assignments.append(assignment)

        return result

    def _execute(
        self,
        assignment: Assignment,
        strategy: AssignmentStrategy,
        errors: List[str],
    ) -> bool:
        """Persist one assignment; returns False if the booking write failed."""
        try:
            self._repository.assign_provider(assignment.job_id, assignment.provider_id)
        except Exception as exc:
            self._collect(errors, f"Failed to assign job {assignment.job_id}: {exc}")
            return False

        try:
            self._repository.mark_provider_busy(assignment.provider_id)
        except Exception as exc:
            self._collect(
                errors, f"Failed to mark provider {assignment.provider_id} busy: {exc}"
            )

        try:
            self._notifier.notify_assignment(assignment.job_id, assignment.provider_id)
        except Exception as exc:
            self._collect(
                errors, f"Failed to notify provider about job {assignment.job_id}: {exc}"
            )

        try:
            self._audit_log.record(
                AUTO_ASSIGN_ACTION,
                assignment.job_id,
                {
                    "providerId": assignment.provider_id,
                    "strategy": strategy.value,
                    "distanceKm": assignment.distance_km,
                },
            )
        except Exception as exc:
            self._collect(
                errors, f"Failed to audit assignment of job {assignment.job_id}: {exc}"
            )

        return True

    # Helpers

    def _resolve_duration(self, duration_hours: Optional[float]) -> float:
        if duration_hours is None:
            duration_hours = self._default_duration_hours

        try:
            value = float(duration_hours)
        except (TypeError, ValueError):
            raise ValidationError(
                f"durationHours must be a number, got {duration_hours!r}"
            ) from None

        if not math.isfinite(value):
            raise ValidationError(f"durationHours must be finite, got {duration_hours!r}")

        return self._working_window.clamp_duration(value)

    def _reject_past_start(self, target_date: date, start_minute: int) -> None:
        now = self._clock()
        today = now.date()
        if target_date < today or (
            target_date == today and start_minute < now.hour * 60 + now.minute
        ):
            raise SchedulingConflictError("Requested time is in the past")

    @staticmethod
    def _collect(errors: List[str], message: str) -> None:
        logger.warning(message)
        errors.append(message)
