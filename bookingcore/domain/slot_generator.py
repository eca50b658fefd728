"""
Core business logic for computing bookable start times for a service day.

Pure domain logic: callers hand in provider and booking snapshots, nothing
is fetched or stored here.
"""

from datetime import date
from typing import Iterable, List, Optional, Sequence

from pendulum import DateTime

from .conflict_detector import ConflictDetector, group_by_provider
from .interval_math import from_minutes
from .models import (
    BookingSnapshot,
    ProviderSnapshot,
    SlotResult,
    TimeInterval,
    WorkingWindow,
)


class SlotGenerator:
    """
    Calculates which start times can be offered to customers on one day.

    Algorithm:
    1. Clamp the requested duration
    2. Narrow the provider pool to available providers (or the one requested)
    3. Collect each provider's occupying intervals on the target day
    4. For every candidate start, count providers free for the whole duration
    5. Keep slots with at least one free provider, dropping past starts today
    """

    def __init__(
        self,
        working_window: WorkingWindow,
        conflict_detector: Optional[ConflictDetector] = None
    ):
        self.working_window = working_window
        self.conflict_detector = conflict_detector or ConflictDetector()

    def generate(
        self,
        target_date: date,
        duration_hours: float,
        providers: Sequence[ProviderSnapshot],
        bookings: Iterable[BookingSnapshot],
        provider_id: Optional[str] = None,
        now: Optional[DateTime] = None
    ) -> List[SlotResult]:
        """
        Find all bookable start times on a day.

        Args:
            target_date: Day to generate slots for
            duration_hours: Requested job length; clamped before use
            providers: Provider pool snapshot
            bookings: Bookings of the pool (other days are ignored)
            provider_id: Restrict the pool to a single provider
            now: Current wall-clock time; starts before it are dropped when
                target_date is today

        Returns:
            Slots in chronological order
        """
        duration = self.working_window.clamp_duration(duration_hours)

        pool = self._candidate_provider_ids(providers, provider_id)
        if not pool:
            return []

        busy = group_by_provider(bookings, target_date)
        earliest = self._earliest_start(target_date, now)

        slots: List[SlotResult] = []

        for start in self.working_window.candidate_starts(duration):
            if start < earliest:
                continue

            requested = TimeInterval.from_start(start, duration)
            free_count = sum(
                1 for pid in pool
                if not self.conflict_detector.has_conflict(busy.get(pid, []), requested)
            )

            if free_count > 0:
                slots.append(
                    SlotResult(time=from_minutes(start), available_provider_count=free_count)
                )

        return slots

    @staticmethod
    def _candidate_provider_ids(
        providers: Sequence[ProviderSnapshot],
        provider_id: Optional[str]
    ) -> List[str]:
        candidates = [p.id for p in providers if p.is_available and p.id]

        if provider_id is not None:
            candidates = [pid for pid in candidates if pid == provider_id]

        return candidates

    @staticmethod
    def _earliest_start(target_date: date, now: Optional[DateTime]) -> int:
        """Minute of day before which starts are already in the past."""
        if now is None or now.date() != target_date:
            return 0
        return now.hour * 60 + now.minute
