"""
Tests for the SchedulingService orchestration layer.
"""

from typing import Any, Dict, List, Tuple

import pendulum
import pytest

from bookingcore.adapters.memory_store import InMemoryBookingStore
from bookingcore.domain.exceptions import (
    FormatError,
    NoProviderAvailableError,
    NotificationError,
    PersistenceError,
    SchedulingConflictError,
    ValidationError,
)
from bookingcore.domain.models import BookingStatus, ProviderStatus, TimeInterval
from bookingcore.services.scheduling_service import SchedulingService

TZ = "America/New_York"


class RecordingNotifier:
    """Minimal stub matching NotifierProtocol."""

    def __init__(self, fail_for: Tuple[str, ...] = ()):
        self.fail_for = fail_for
        self.calls: List[Tuple[str, str]] = []

    def notify_assignment(self, job_id, provider_id):
        if job_id in self.fail_for:
            raise NotificationError("webhook down")
        self.calls.append((job_id, provider_id))


class RecordingAuditLog:
    def __init__(self):
        self.events: List[Dict[str, Any]] = []

    def record(self, action, resource_id, metadata):
        self.events.append({"action": action, "resourceId": resource_id, "metadata": metadata})


class FlakyStore(InMemoryBookingStore):
    """Store whose booking writes fail for selected jobs."""

    def __init__(self, *args, fail_for: Tuple[str, ...] = (), **kwargs):
        super().__init__(*args, **kwargs)
        self.fail_for = fail_for

    def assign_provider(self, job_id, provider_id):
        if job_id in self.fail_for:
            raise PersistenceError("database unavailable")
        super().assign_provider(job_id, provider_id)


def _data(providers=None, bookings=None):
    return {
        "providers": providers if providers is not None else [
            {"id": "P1", "rating": 5, "service_radius_km": 10},
        ],
        "bookings": bookings or [],
    }


def _clock(*args):
    return lambda: pendulum.datetime(*args, tz=TZ)


def _build(data, store_cls=InMemoryBookingStore, notifier=None, now=(2025, 1, 10, 8, 0), fail_for=()):
    store = store_cls.from_dict(data)
    if fail_for:
        store.fail_for = fail_for
    notifier = notifier or RecordingNotifier()
    audit = RecordingAuditLog()
    service = SchedulingService(
        repository=store,
        notifier=notifier,
        audit_log=audit,
        timezone=TZ,
        clock=_clock(*now),
    )
    return service, store, notifier, audit


class TestGetAvailability:
    """Tests for SchedulingService.get_availability."""

    def test_returns_slots_around_existing_booking(self):
        data = _data(bookings=[
            {"id": "b1", "provider_id": "P1", "date": "2025-01-15", "time": "10:00",
             "duration_hours": 2, "status": "confirmed"},
        ])
        service, *_ = _build(data)

        slots = service.get_availability("2025-01-15", duration_hours=2)

        assert [s.time for s in slots] == ["12:00", "13:00", "14:00", "15:00"]

    def test_default_duration_is_two_hours(self):
        service, *_ = _build(_data())

        slots = service.get_availability("2025-01-15")

        assert slots[-1].time == "15:00"

    def test_drops_past_starts_today(self):
        service, *_ = _build(_data(), now=(2025, 1, 15, 11, 30))

        slots = service.get_availability("2025-01-15", duration_hours=1)

        assert slots[0].time == "12:00"

    def test_no_available_providers_returns_empty_list(self):
        data = _data(providers=[{"id": "P1", "availability_status": "offline"}])
        service, *_ = _build(data)

        assert service.get_availability("2025-01-15") == []

    def test_unknown_provider_scope_returns_empty_list(self):
        service, *_ = _build(_data())

        assert service.get_availability("2025-01-15", provider_id="ghost") == []

    def test_invalid_date_is_rejected(self):
        service, *_ = _build(_data())

        with pytest.raises(FormatError):
            service.get_availability("15/01/2025")

    def test_non_numeric_duration_is_rejected(self):
        service, *_ = _build(_data())

        with pytest.raises(ValidationError, match="durationHours"):
            service.get_availability("2025-01-15", duration_hours="lots")

        with pytest.raises(ValidationError):
            service.get_availability("2025-01-15", duration_hours=float("nan"))


class TestCheckConflict:
    """Tests for SchedulingService.check_conflict."""

    def setup_method(self):
        data = _data(bookings=[
            {"id": "b1", "provider_id": "P1", "date": "2025-01-15", "time": "10:00",
             "duration_hours": 2, "status": "confirmed"},
        ])
        self.service, *_ = _build(data)

    def test_overlap_is_a_conflict(self):
        assert self.service.check_conflict("P1", "2025-01-15", "11:00", 1)

    def test_adjacent_slot_is_free(self):
        assert not self.service.check_conflict("P1", "2025-01-15", "12:00", 1)

    def test_booking_does_not_conflict_with_itself(self):
        assert not self.service.check_conflict(
            "P1", "2025-01-15", "10:00", 2, exclude_booking_id="b1"
        )

    def test_other_day_is_free(self):
        assert not self.service.check_conflict("P1", "2025-01-16", "10:00", 2)

    def test_bad_time_format(self):
        with pytest.raises(FormatError):
            self.service.check_conflict("P1", "2025-01-15", "9:00", 1)

    def test_missing_provider_id(self):
        with pytest.raises(ValidationError, match="provider_id"):
            self.service.check_conflict("", "2025-01-15", "09:00", 1)


class TestValidateReschedule:
    """Tests for SchedulingService.validate_reschedule."""

    def _service(self, status="confirmed", now=(2025, 1, 10, 8, 0)):
        data = _data(bookings=[
            {"id": "b1", "provider_id": "P1", "date": "2025-01-15", "time": "10:00",
             "duration_hours": 2, "status": status},
            {"id": "b2", "provider_id": "P1", "date": "2025-01-15", "time": "14:00",
             "duration_hours": 2, "status": "confirmed"},
        ])
        service, *_ = _build(data, now=now)
        return service

    def test_move_to_free_slot(self):
        interval = self._service().validate_reschedule("b1", "2025-01-15", "12:00")

        assert interval == TimeInterval(720, 840)

    def test_same_slot_is_allowed(self):
        interval = self._service().validate_reschedule("b1", "2025-01-15", "10:00")

        assert interval == TimeInterval(600, 720)

    def test_clash_with_other_booking(self):
        with pytest.raises(SchedulingConflictError, match="not available"):
            self._service().validate_reschedule("b1", "2025-01-15", "13:00")

    def test_new_duration_is_clamped(self):
        interval = self._service().validate_reschedule("b1", "2025-01-16", "09:00", duration_hours=20)

        assert interval.duration_minutes() == 8 * 60

    @pytest.mark.parametrize("status", ["cancelled", "completed", "in-progress"])
    def test_final_statuses_cannot_be_rescheduled(self, status):
        with pytest.raises(ValidationError, match="Cannot reschedule"):
            self._service(status=status).validate_reschedule("b1", "2025-01-16", "10:00")

    def test_unknown_booking(self):
        with pytest.raises(ValidationError, match="not found"):
            self._service().validate_reschedule("nope", "2025-01-16", "10:00")

    def test_past_time_today(self):
        service = self._service(now=(2025, 1, 15, 12, 30))

        with pytest.raises(SchedulingConflictError, match="in the past"):
            service.validate_reschedule("b1", "2025-01-15", "12:00")

    def test_past_day(self):
        service = self._service(now=(2025, 1, 16, 8, 0))

        with pytest.raises(SchedulingConflictError, match="in the past"):
            service.validate_reschedule("b1", "2025-01-15", "16:00")


class TestFindInstantProvider:
    """Tests for SchedulingService.find_instant_provider."""

    def test_picks_first_free_provider(self):
        data = _data(
            providers=[{"id": "P1"}, {"id": "P2"}],
            bookings=[{"id": "b1", "provider_id": "P1", "date": "2025-01-15", "time": "10:00",
                       "duration_hours": 2, "status": "confirmed"}],
        )
        service, *_ = _build(data)

        assert service.find_instant_provider("2025-01-15", "10:00") == "P2"
        assert service.find_instant_provider("2025-01-15", "12:00") == "P1"

    def test_nobody_free(self):
        data = _data(
            providers=[{"id": "P1"}],
            bookings=[{"id": "b1", "provider_id": "P1", "date": "2025-01-15", "time": "09:00",
                       "duration_hours": 8, "status": "confirmed"}],
        )
        service, *_ = _build(data)

        with pytest.raises(NoProviderAvailableError, match="not available"):
            service.find_instant_provider("2025-01-15", "10:00")

    def test_no_providers_at_all(self):
        service, *_ = _build(_data(providers=[{"id": "P1", "availability_status": "busy"}]))

        with pytest.raises(NoProviderAvailableError, match="No providers"):
            service.find_instant_provider("2025-01-15", "10:00")


def _pending(job_id, time, date="2025-01-15"):
    return {"id": job_id, "provider_id": None, "date": date, "time": time,
            "duration_hours": 2, "status": "pending"}


class TestAutoAssign:
    """Tests for the batch assignment execution phase."""

    def test_assigns_and_persists(self):
        """A successful assignment is written, announced and audited."""
        service, store, notifier, audit = _build(_data(bookings=[_pending("J1", "10:00")]))

        result = service.auto_assign()

        assert result.assigned == 1
        assert result.total == 1
        assert result.errors == []
        assert result.assignments[0].provider_id == "P1"

        booking = store.get_booking("J1")
        assert booking.provider_id == "P1"
        assert booking.status is BookingStatus.CONFIRMED
        assert store.list_providers()[0].availability_status is ProviderStatus.BUSY

        assert notifier.calls == [("J1", "P1")]
        assert audit.events == [{
            "action": "auto_assign_provider",
            "resourceId": "J1",
            "metadata": {"providerId": "P1", "strategy": "balanced", "distanceKm": 5.0},
        }]

    def test_out_of_radius_job_is_left_unassigned(self):
        data = _data(
            providers=[{"id": "P1", "rating": 5, "service_radius_km": 3}],
            bookings=[_pending("J1", "10:00")],
        )
        service, store, notifier, _ = _build(data)

        result = service.auto_assign()

        assert result.assigned == 0
        assert result.total == 1
        assert result.errors == []
        assert store.get_booking("J1").provider_id is None

    def test_partial_failure_is_reported_not_raised(self):
        """One failed write does not stop the rest of the batch."""
        data = _data(
            providers=[{"id": "P1", "rating": 5}, {"id": "P2", "rating": 4}],
            bookings=[_pending("J1", "09:00"), _pending("J2", "11:00")],
        )
        service, store, notifier, audit = _build(data, store_cls=FlakyStore, fail_for=("J1",))

        result = service.auto_assign()

        assert result.assigned == 1
        assert result.total == 2
        assert [a.job_id for a in result.assignments] == ["J2"]
        assert len(result.errors) == 1
        assert "J1" in result.errors[0]
        assert [e["resourceId"] for e in audit.events] == ["J2"]

    def test_notification_failure_keeps_assignment(self):
        notifier = RecordingNotifier(fail_for=("J1",))
        service, store, _, audit = _build(_data(bookings=[_pending("J1", "10:00")]), notifier=notifier)

        result = service.auto_assign()

        assert result.assigned == 1
        assert store.get_booking("J1").provider_id == "P1"
        assert len(result.errors) == 1
        assert "notify" in result.errors[0]
        assert len(audit.events) == 1

    def test_strategy_and_job_filter(self):
        data = _data(
            providers=[{"id": "P1", "rating": 2}, {"id": "P2", "rating": 5}],
            bookings=[_pending("J1", "09:00"), _pending("J2", "11:00")],
        )
        service, store, _, audit = _build(data)

        result = service.auto_assign(job_ids=["J2"], strategy="rating")

        assert [(a.job_id, a.provider_id) for a in result.assignments] == [("J2", "P2")]
        assert audit.events[0]["metadata"]["strategy"] == "rating"
        assert store.get_booking("J1").provider_id is None

    def test_dry_run_writes_nothing(self):
        service, store, notifier, audit = _build(_data(bookings=[_pending("J1", "10:00")]))

        result = service.auto_assign(dry_run=True)

        assert result.assigned == 1
        assert store.get_booking("J1").provider_id is None
        assert notifier.calls == []
        assert audit.events == []

    def test_no_unassigned_jobs(self):
        service, *_ = _build(_data())

        result = service.auto_assign()

        assert result.assigned == 0
        assert result.total == 0
        assert result.errors == []

    def test_unknown_strategy_is_rejected(self):
        service, *_ = _build(_data(bookings=[_pending("J1", "10:00")]))

        with pytest.raises(ValidationError):
            service.auto_assign(strategy="nearest")

    def test_workload_uses_todays_active_bookings(self):
        """Providers with more jobs today lose under the workload strategy."""
        data = _data(
            providers=[{"id": "P1"}, {"id": "P2"}],
            bookings=[
                {"id": "b1", "provider_id": "P1", "date": "2025-01-10", "time": "09:00",
                 "duration_hours": 1, "status": "confirmed"},
                _pending("J1", "10:00"),
            ],
        )
        service, *_ = _build(data, now=(2025, 1, 10, 8, 0))

        result = service.auto_assign(strategy="workload")

        assert result.assignments[0].provider_id == "P2"
