"""
In-memory persistence collaborator backed by a JSON snapshot file.
"""

import json
import logging
import threading
from dataclasses import replace
from datetime import date
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence

from ..domain.exceptions import PersistenceError
from ..domain.interval_math import parse_date, to_minutes
from ..domain.models import (
    BookingSnapshot,
    BookingStatus,
    GeoPoint,
    JobRequest,
    ProviderSnapshot,
    ProviderStatus,
    TimeInterval,
)

logger = logging.getLogger(__name__)


ACTIVE_STATUSES = (BookingStatus.CONFIRMED, BookingStatus.IN_PROGRESS)


class InMemoryBookingStore:
    """
    Repository holding providers and bookings in memory.

    Useful for the CLI, demos and tests. Data can be loaded from a JSON
    file shaped like ``sample_data.json``:

        {
            "providers": [{"id": "...", "availability_status": "available", ...}],
            "bookings": [{"id": "...", "provider_id": "...", "date": "YYYY-MM-DD",
                          "time": "HH:MM", "duration_hours": 2, "status": "pending"}]
        }

    Writes are serialised with a lock so that a provider can never be
    attached to a job twice, even if assignments are executed concurrently.
    """

    def __init__(
        self,
        providers: Iterable[ProviderSnapshot] = (),
        bookings: Iterable[BookingSnapshot] = ()
    ):
        self._providers: Dict[str, ProviderSnapshot] = {p.id: p for p in providers}
        self._bookings: Dict[str, BookingSnapshot] = {b.id: b for b in bookings}
        self._lock = threading.Lock()

    @classmethod
    def from_json(cls, data_file: Path) -> "InMemoryBookingStore":
        """
        Load a store from a JSON snapshot file.

        Raises:
            FileNotFoundError: If the file doesn't exist
            ValueError: If the file content is malformed
        """
        if not data_file.exists():
            raise FileNotFoundError(f"Data file not found: {data_file}")

        with open(data_file, "r", encoding="utf-8") as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as exc:
                raise ValueError(f"Invalid JSON in {data_file}: {exc}") from exc

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InMemoryBookingStore":
        providers = [_parse_provider(item) for item in data.get("providers", [])]
        bookings = [_parse_booking(item) for item in data.get("bookings", [])]
        return cls(providers=providers, bookings=bookings)

    def list_providers(self, load_date: Optional[date] = None) -> List[ProviderSnapshot]:
        """
        Return all providers.

        With ``load_date`` each provider's current_load is recomputed from the
        confirmed and in-progress bookings on that day.
        """
        providers = list(self._providers.values())
        if load_date is None:
            return providers

        counts: Dict[str, int] = {}
        for booking in self._bookings.values():
            if booking.date == load_date and booking.status in ACTIVE_STATUSES and booking.provider_id:
                counts[booking.provider_id] = counts.get(booking.provider_id, 0) + 1

        return [replace(p, current_load=counts.get(p.id, 0)) for p in providers]

    def list_bookings(
        self,
        on_date: date,
        provider_ids: Optional[Sequence[str]] = None
    ) -> List[BookingSnapshot]:
        wanted = set(provider_ids) if provider_ids is not None else None
        return [
            b for b in self._bookings.values()
            if b.date == on_date and (wanted is None or b.provider_id in wanted)
        ]

    def get_booking(self, booking_id: str) -> Optional[BookingSnapshot]:
        return self._bookings.get(booking_id)

    def list_unassigned_jobs(self, job_ids: Optional[Sequence[str]] = None) -> List[JobRequest]:
        """Pending bookings without a provider, optionally limited to some ids."""
        wanted = set(job_ids) if job_ids else None
        return [
            JobRequest(id=b.id, date=b.date, interval=b.interval, location=b.location)
            for b in self._bookings.values()
            if b.status is BookingStatus.PENDING
            and b.provider_id is None
            and (wanted is None or b.id in wanted)
        ]

    def assign_provider(self, job_id: str, provider_id: str) -> None:
        """
        Attach a provider to a pending job and confirm it.

        Raises:
            PersistenceError: If the job or provider is unknown or the job
                already has a provider
        """
        with self._lock:
            booking = self._bookings.get(job_id)
            if booking is None:
                raise PersistenceError(f"Booking {job_id} does not exist")
            if provider_id not in self._providers:
                raise PersistenceError(f"Provider {provider_id} does not exist")
            if booking.provider_id is not None:
                raise PersistenceError(
                    f"Booking {job_id} is already assigned to {booking.provider_id}"
                )

            self._bookings[job_id] = replace(
                booking, provider_id=provider_id, status=BookingStatus.CONFIRMED
            )
            logger.debug("Booking %s assigned to %s", job_id, provider_id)

    def mark_provider_busy(self, provider_id: str) -> None:
        with self._lock:
            provider = self._providers.get(provider_id)
            if provider is None:
                raise PersistenceError(f"Provider {provider_id} does not exist")
            self._providers[provider_id] = replace(
                provider, availability_status=ProviderStatus.BUSY
            )


def _parse_location(item: Optional[Dict[str, Any]]) -> Optional[GeoPoint]:
    if not item:
        return None
    return GeoPoint(lat=float(item["lat"]), lng=float(item["lng"]))


def _parse_provider(item: Dict[str, Any]) -> ProviderSnapshot:
    try:
        rating = item.get("rating")
        radius = item.get("service_radius_km")
        return ProviderSnapshot(
            id=str(item["id"]),
            availability_status=ProviderStatus(item.get("availability_status", "available")),
            rating=float(rating) if rating is not None else None,
            service_radius_km=float(radius) if radius is not None else None,
            location=_parse_location(item.get("location")),
            current_load=int(item.get("current_load", 0)),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise ValueError(f"Invalid provider entry {item!r}: {exc}") from exc


def _parse_booking(item: Dict[str, Any]) -> BookingSnapshot:
    try:
        provider_id = item.get("provider_id")
        return BookingSnapshot(
            id=str(item["id"]),
            provider_id=str(provider_id) if provider_id else None,
            date=parse_date(item["date"]),
            interval=TimeInterval.from_start(
                to_minutes(item["time"]), float(item.get("duration_hours", 2))
            ),
            status=BookingStatus(item.get("status", "pending")),
            location=_parse_location(item.get("location")),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise ValueError(f"Invalid booking entry {item!r}: {exc}") from exc

