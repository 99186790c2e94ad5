"""Booking service scenarios against a real (SQLite) session."""

import uuid
from datetime import datetime, timezone

import pytest

from fleetdesk.models import AuditLog, Booking, BookingStatus, VehicleStatus
from fleetdesk.schemas.booking import BookingCreateRequest, BookingUpdateRequest, RejectRequest, TimeFilter
from fleetdesk.schemas.common import Page
from fleetdesk.services.booking_service import BookingService
from fleetdesk.services.booking_store import OverlapConstraintViolation, SqlAlchemyBookingStore
from fleetdesk.services.permissions import Actor
from fleetdesk.utils.exceptions import (
    BookingConflictException,
    ForbiddenException,
    InvalidDateRangeException,
    InvalidStatusTransitionException,
    NotFoundException,
    VehicleUnavailableException,
)

UTC = timezone.utc
NOW = datetime(2024, 12, 1, tzinfo=UTC)


def t(hour: int, day: int = 1) -> datetime:
    return datetime(2025, 1, day, hour, tzinfo=UTC)


@pytest.fixture
def service():
    return BookingService()


def request(vehicle, start, end, **kwargs) -> BookingCreateRequest:
    return BookingCreateRequest(vehicle_id=vehicle.id, start_time=start, end_time=end, **kwargs)


class TestCreate:
    def test_new_booking_is_pending(self, db, service, driver, vehicle):
        data = service.create_booking(db, request(vehicle, t(10), t(12), reason="Client visit"),
                                      Actor.from_profile(driver), now=NOW)
        assert data["status"] == "pending"
        assert data["user"]["id"] == str(driver.id)
        assert data["reason"] == "Client visit"
        assert db.query(AuditLog).filter(AuditLog.action == "CREATE").count() == 1

    def test_times_stored_in_utc(self, db, service, driver, vehicle):
        data = service.create_booking(
            db, request(vehicle, "2025-01-01T12:00:00+02:00", "2025-01-01T14:00:00+02:00"),
            Actor.from_profile(driver), now=NOW,
        )
        assert data["start_time"] == "2025-01-01T10:00:00+00:00"
        assert data["end_time"] == "2025-01-01T12:00:00+00:00"

    def test_overlap_with_approved_booking_rejected(self, db, service, driver, other_driver, manager, vehicle):
        first = service.create_booking(db, request(vehicle, t(10), t(12)), Actor.from_profile(driver), now=NOW)
        approved = service.approve_booking(db, uuid.UUID(first["id"]), Actor.from_profile(manager), now=NOW)
        assert approved["status"] == "approved"
        assert approved["status_changed_by"] == str(manager.id)

        with pytest.raises(BookingConflictException) as exc:
            service.create_booking(db, request(vehicle, t(11), t(13)), Actor.from_profile(other_driver), now=NOW)
        assert [str(b.id) for b in exc.value.conflicts] == [first["id"]]
        assert exc.value.status_code == 409
        assert db.query(Booking).count() == 1

    def test_pending_booking_also_blocks(self, db, service, driver, other_driver, vehicle):
        service.create_booking(db, request(vehicle, t(10), t(12)), Actor.from_profile(driver), now=NOW)
        with pytest.raises(BookingConflictException):
            service.create_booking(db, request(vehicle, t(9), t(11)),
                                   Actor.from_profile(other_driver), now=NOW)

    def test_back_to_back_bookings_allowed(self, db, service, driver, other_driver, vehicle):
        service.create_booking(db, request(vehicle, t(10), t(12)), Actor.from_profile(driver), now=NOW)
        data = service.create_booking(db, request(vehicle, t(12), t(13)), Actor.from_profile(other_driver), now=NOW)
        assert data["status"] == "pending"

    def test_cancelled_booking_frees_the_slot(self, db, service, driver, other_driver, vehicle, add_booking):
        add_booking(driver, vehicle, t(10), t(12), BookingStatus.CANCELLED)
        data = service.create_booking(db, request(vehicle, t(10), t(12)), Actor.from_profile(other_driver), now=NOW)
        assert data["status"] == "pending"

    def test_start_in_past_rejected(self, db, service, driver, vehicle):
        with pytest.raises(InvalidDateRangeException, match="past"):
            service.create_booking(db, request(vehicle, t(10), t(12)), Actor.from_profile(driver),
                                   now=t(11))

    def test_vehicle_in_maintenance_rejected(self, db, service, driver, vehicle):
        vehicle.status = VehicleStatus.MAINTENANCE
        db.commit()
        with pytest.raises(VehicleUnavailableException):
            service.create_booking(db, request(vehicle, t(10), t(12)), Actor.from_profile(driver), now=NOW)

    def test_vehicle_of_other_organization_not_found(self, db, service, outside_manager, vehicle):
        with pytest.raises(NotFoundException):
            service.create_booking(db, request(vehicle, t(10), t(12)),
                                   Actor.from_profile(outside_manager), now=NOW)

    def test_lost_race_reports_the_winner(self, db, service, driver, other_driver, vehicle, monkeypatch):
        """The exclusion constraint fires after our read: roll back and name the booking that won."""
        winner = Booking(user_id=other_driver.id, vehicle_id=vehicle.id,
                         start_time=t(10), end_time=t(12), status=BookingStatus.PENDING)

        def add_after_rival_commits(store, booking):
            store.db.add(winner)
            store.db.commit()
            raise OverlapConstraintViolation("bookings_no_overlap")

        monkeypatch.setattr(SqlAlchemyBookingStore, "add_booking", add_after_rival_commits)
        with pytest.raises(BookingConflictException) as exc:
            service.create_booking(db, request(vehicle, t(11), t(13)), Actor.from_profile(driver), now=NOW)
        assert [b.id for b in exc.value.conflicts] == [winner.id]
        assert db.query(Booking).count() == 1


class TestUpdate:
    def test_move_rechecks_conflicts_excluding_itself(self, db, service, driver, other_driver, vehicle, add_booking):
        own = add_booking(driver, vehicle, t(10), t(12))
        add_booking(other_driver, vehicle, t(14), t(16))
        actor = Actor.from_profile(driver)

        data = service.update_booking(db, own.id, BookingUpdateRequest(end_time=t(13)), actor, now=NOW)
        assert data["end_time"] == t(13).isoformat()

        with pytest.raises(BookingConflictException):
            service.update_booking(db, own.id, BookingUpdateRequest(end_time=t(15)), actor, now=NOW)

    def test_other_driver_cannot_edit(self, db, service, driver, other_driver, vehicle, add_booking):
        b = add_booking(driver, vehicle, t(10), t(12))
        with pytest.raises(ForbiddenException):
            service.update_booking(db, b.id, BookingUpdateRequest(notes="mine now"),
                                   Actor.from_profile(other_driver), now=NOW)

    def test_terminal_booking_is_read_only(self, db, service, driver, vehicle, add_booking):
        b = add_booking(driver, vehicle, t(10), t(12), BookingStatus.REJECTED)
        with pytest.raises(InvalidStatusTransitionException):
            service.update_booking(db, b.id, BookingUpdateRequest(notes="again?"),
                                   Actor.from_profile(driver), now=NOW)


class TestTransitions:
    def test_approve_rechecks_schedule(self, db, service, driver, other_driver, manager, vehicle, add_booking):
        add_booking(driver, vehicle, t(10), t(12), BookingStatus.APPROVED)
        late = add_booking(other_driver, vehicle, t(11), t(13))
        with pytest.raises(BookingConflictException):
            service.approve_booking(db, late.id, Actor.from_profile(manager), now=NOW)
        db.refresh(late)
        assert late.status == BookingStatus.PENDING

    def test_reject_records_reason(self, db, service, driver, manager, vehicle, add_booking):
        b = add_booking(driver, vehicle, t(10), t(12))
        data = service.reject_booking(db, b.id, RejectRequest(reason="  Needed for audit "),
                                      Actor.from_profile(manager), now=NOW)
        assert data["status"] == "rejected"
        assert data["rejection_reason"] == "Needed for audit"

    def test_outside_manager_cannot_approve(self, db, service, driver, outside_manager, vehicle, add_booking):
        b = add_booking(driver, vehicle, t(10), t(12))
        with pytest.raises(ForbiddenException):
            service.approve_booking(db, b.id, Actor.from_profile(outside_manager), now=NOW)

    def test_cancel_then_history(self, db, service, driver, manager, vehicle):
        created = service.create_booking(db, request(vehicle, t(10), t(12)), Actor.from_profile(driver), now=NOW)
        service.cancel_booking(db, uuid.UUID(created["id"]), Actor.from_profile(driver), now=NOW)
        history = service.get_history(db, uuid.UUID(created["id"]), Actor.from_profile(manager))
        assert [entry["action"] for entry in history] == ["CREATE", "CANCEL"]

    def test_unknown_booking(self, db, service, manager):
        with pytest.raises(NotFoundException):
            service.approve_booking(db, uuid.uuid4(), Actor.from_profile(manager), now=NOW)

    def test_complete_elapsed_only_touches_finished_approved(self, db, service, driver, vehicle, add_booking):
        done = add_booking(driver, vehicle, t(8), t(9), BookingStatus.APPROVED)
        running = add_booking(driver, vehicle, t(10), t(12), BookingStatus.APPROVED)
        waiting = add_booking(driver, vehicle, t(6), t(7), BookingStatus.PENDING)

        assert service.complete_elapsed(db, now=t(11)) == 1
        for b in (done, running, waiting):
            db.refresh(b)
        assert done.status == BookingStatus.COMPLETED
        assert done.status_changed_by is None
        assert running.status == BookingStatus.APPROVED
        assert waiting.status == BookingStatus.PENDING


class TestVisibility:
    def test_driver_sees_only_own_bookings(self, db, service, driver, other_driver, manager, vehicle, add_booking):
        add_booking(driver, vehicle, t(10), t(11))
        add_booking(other_driver, vehicle, t(12), t(13))

        mine, total = service.list_bookings(db, Actor.from_profile(driver), Page(), now=NOW)
        assert total == 1
        assert mine[0]["user"]["id"] == str(driver.id)

        everything, total = service.list_bookings(db, Actor.from_profile(manager), Page(), now=NOW)
        assert total == 2

    def test_default_page_when_none_given(self, db, service, driver, manager, vehicle, add_booking):
        for i in range(51):
            add_booking(driver, vehicle, t(8 + (i % 2) * 6, day=1 + i // 2), t(9 + (i % 2) * 6, day=1 + i // 2))
        actor = Actor.from_profile(manager)

        first, total = service.list_bookings(db, actor, now=NOW)
        assert total == 51
        assert len(first) == 50

        second, _ = service.list_bookings(db, actor, Page(page=2), now=NOW)
        assert len(second) == 1
        again, _ = service.list_bookings(db, actor, now=NOW)
        assert len(again) == 50

    def test_driver_cannot_filter_by_other_user(self, db, service, driver, other_driver):
        with pytest.raises(ForbiddenException):
            service.list_bookings(db, Actor.from_profile(driver), Page(), user_id=other_driver.id, now=NOW)

    def test_upcoming_and_past_filters(self, db, service, manager, driver, vehicle, add_booking):
        add_booking(driver, vehicle, t(8), t(9), BookingStatus.COMPLETED)
        add_booking(driver, vehicle, t(14), t(15))
        actor = Actor.from_profile(manager)

        upcoming, _ = service.list_bookings(db, actor, Page(), TimeFilter.UPCOMING, now=t(12))
        past, _ = service.list_bookings(db, actor, Page(), TimeFilter.PAST, now=t(12))
        assert [b["start_time"] for b in upcoming] == [t(14).isoformat()]
        assert [b["start_time"] for b in past] == [t(8).isoformat()]

    def test_other_organization_booking_forbidden(self, db, service, driver, outside_manager, vehicle, add_booking):
        b = add_booking(driver, vehicle, t(10), t(11))
        with pytest.raises(ForbiddenException):
            service.get_booking(db, b.id, Actor.from_profile(outside_manager))

    def test_calendar_returns_overlapping_window(self, db, service, driver, vehicle, add_booking):
        add_booking(driver, vehicle, t(10), t(12))
        add_booking(driver, vehicle, t(10, day=3), t(12, day=3))
        events = service.get_calendar(db, Actor.from_profile(driver), t(0), t(23))
        assert len(events) == 1
        assert events[0]["is_own"] is True
