"""
Conflict checks between a candidate interval and a provider's bookings.
"""

from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence

from .models import BookingSnapshot, TimeInterval


class ConflictDetector:
    """
    Decides whether a candidate interval collides with existing bookings.

    The check is binary and is the only gate used before a booking is
    created with a provider or moved to a new time. Cancelled bookings never
    conflict, and the booking being rescheduled can be excluded so that it
    does not collide with itself.
    """

    def has_conflict(
        self,
        provider_bookings: Iterable[BookingSnapshot],
        candidate: TimeInterval,
        exclude_booking_id: Optional[str] = None
    ) -> bool:
        """Return True if any occupying booking overlaps the candidate."""
        return any(
            self._blocks(booking, candidate, exclude_booking_id)
            for booking in provider_bookings
        )

    def conflicting_bookings(
        self,
        provider_bookings: Iterable[BookingSnapshot],
        candidate: TimeInterval,
        exclude_booking_id: Optional[str] = None
    ) -> List[BookingSnapshot]:
        """Return every occupying booking that overlaps the candidate."""
        return [
            booking for booking in provider_bookings
            if self._blocks(booking, candidate, exclude_booking_id)
        ]

    def find_free_provider(
        self,
        provider_ids: Sequence[str],
        bookings: Iterable[BookingSnapshot],
        on_date: date,
        candidate: TimeInterval
    ) -> Optional[str]:
        """
        Return the first provider, in pool order, who is free for the candidate.
        """
        by_provider = group_by_provider(bookings, on_date)

        for provider_id in provider_ids:
            if not self.has_conflict(by_provider.get(provider_id, []), candidate):
                return provider_id

        return None

    @staticmethod
    def _blocks(
        booking: BookingSnapshot,
        candidate: TimeInterval,
        exclude_booking_id: Optional[str]
    ) -> bool:
        if exclude_booking_id is not None and booking.id == exclude_booking_id:
            return False
        if not booking.is_occupying:
            return False
        return booking.interval.overlaps(candidate)


def group_by_provider(
    bookings: Iterable[BookingSnapshot],
    on_date: date
) -> Dict[str, List[BookingSnapshot]]:
    """
    Bucket the occupying bookings of one day by provider id.

    Bookings without a provider, on other days, or cancelled are dropped.
    """
    grouped: Dict[str, List[BookingSnapshot]] = {}

    for booking in bookings:
        if booking.provider_id is None or booking.date != on_date:
            continue
        if not booking.is_occupying:
            continue
        grouped.setdefault(booking.provider_id, []).append(booking)

    return grouped
