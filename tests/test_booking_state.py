"""Tests for the booking lifecycle and its guards."""

import uuid
from datetime import datetime, timezone

import pytest

from fleetdesk.models import Booking, BookingStatus, UserRole, Vehicle
from fleetdesk.services.booking_state import BookingAction, BookingStateMachine, next_status
from fleetdesk.services.permissions import Actor
from fleetdesk.utils.exceptions import ForbiddenException, InvalidStatusTransitionException

UTC = timezone.utc
ORG = uuid.uuid4()


def t(day: int, hour: int = 0) -> datetime:
    return datetime(2025, 1, day, hour, tzinfo=UTC)


START, END = t(10, 9), t(10, 17)
BEFORE, DURING, AFTER = t(5), t(10, 12), t(11)


def actor(role=UserRole.DRIVER, org=ORG) -> Actor:
    return Actor(user_id=uuid.uuid4(), organization_id=org, role=role)


@pytest.fixture
def machine():
    return BookingStateMachine()


@pytest.fixture
def owner():
    return actor()


@pytest.fixture
def manager():
    return actor(UserRole.FLEET_MANAGER)


def make_booking(owner: Actor, status=BookingStatus.PENDING) -> Booking:
    vehicle = Vehicle(id=uuid.uuid4(), organization_id=ORG, make="Ford", model="Transit",
                      year=2021, license_plate="VAN1")
    return Booking(id=uuid.uuid4(), user_id=owner.user_id, vehicle_id=vehicle.id, vehicle=vehicle,
                   start_time=START, end_time=END, status=status)


class TestTransitionTable:
    def test_pending_moves(self):
        assert next_status(BookingStatus.PENDING, BookingAction.APPROVE) == BookingStatus.APPROVED
        assert next_status(BookingStatus.PENDING, BookingAction.REJECT) == BookingStatus.REJECTED
        assert next_status(BookingStatus.PENDING, BookingAction.CANCEL) == BookingStatus.CANCELLED

    def test_approved_moves(self):
        assert next_status(BookingStatus.APPROVED, BookingAction.CANCEL) == BookingStatus.CANCELLED
        assert next_status(BookingStatus.APPROVED, BookingAction.COMPLETE) == BookingStatus.COMPLETED

    def test_pending_cannot_complete(self):
        with pytest.raises(InvalidStatusTransitionException):
            next_status(BookingStatus.PENDING, BookingAction.COMPLETE)

    @pytest.mark.parametrize("status", [
        BookingStatus.REJECTED, BookingStatus.CANCELLED, BookingStatus.COMPLETED,
    ])
    @pytest.mark.parametrize("action", list(BookingAction))
    def test_terminal_statuses_are_final(self, status, action):
        with pytest.raises(InvalidStatusTransitionException, match=f"already {status.value}"):
            next_status(status, action)


class TestApproveReject:
    def test_manager_approves_pending(self, machine, owner, manager):
        b = make_booking(owner)
        machine.approve(b, manager, now=BEFORE)
        assert b.status == BookingStatus.APPROVED
        assert b.status_changed_by == manager.user_id
        assert b.status_changed_at == BEFORE

    def test_approving_approved_booking_leaves_it_unchanged(self, machine, owner, manager):
        b = make_booking(owner, BookingStatus.APPROVED)
        with pytest.raises(InvalidStatusTransitionException):
            machine.approve(b, manager, now=BEFORE)
        assert b.status == BookingStatus.APPROVED
        assert b.status_changed_by is None

    def test_rejected_booking_cannot_be_approved(self, machine, owner, manager):
        b = make_booking(owner)
        machine.reject(b, manager, "Vehicle needed elsewhere", now=BEFORE)
        assert b.status == BookingStatus.REJECTED
        assert b.rejection_reason == "Vehicle needed elsewhere"
        with pytest.raises(InvalidStatusTransitionException):
            machine.approve(b, manager, now=BEFORE)
        assert b.status == BookingStatus.REJECTED

    def test_blank_rejection_reason_stored_as_none(self, machine, owner, manager):
        b = make_booking(owner)
        machine.reject(b, manager, "   ", now=BEFORE)
        assert b.rejection_reason is None

    def test_driver_cannot_approve(self, machine, owner):
        b = make_booking(owner)
        with pytest.raises(ForbiddenException):
            machine.approve(b, owner, now=BEFORE)
        assert b.status == BookingStatus.PENDING

    def test_manager_of_other_organization_cannot_reject(self, machine, owner):
        b = make_booking(owner)
        with pytest.raises(ForbiddenException):
            machine.reject(b, actor(UserRole.ADMIN, org=uuid.uuid4()), now=BEFORE)
        assert b.status == BookingStatus.PENDING

    def test_authorization_checked_before_status(self, machine, owner):
        b = make_booking(owner, BookingStatus.CANCELLED)
        with pytest.raises(ForbiddenException):
            machine.approve(b, owner, now=BEFORE)


class TestCancel:
    def test_owner_cancels_before_start(self, machine, owner):
        b = make_booking(owner, BookingStatus.APPROVED)
        machine.cancel(b, owner, now=BEFORE)
        assert b.status == BookingStatus.CANCELLED
        assert b.status_changed_by == owner.user_id

    def test_manager_cancels_someone_elses_booking(self, machine, owner, manager):
        b = make_booking(owner)
        machine.cancel(b, manager, now=BEFORE)
        assert b.status == BookingStatus.CANCELLED

    def test_other_driver_cannot_cancel(self, machine, owner):
        b = make_booking(owner)
        with pytest.raises(ForbiddenException):
            machine.cancel(b, actor(), now=BEFORE)
        assert b.status == BookingStatus.PENDING

    def test_cannot_cancel_after_start(self, machine, owner, manager):
        b = make_booking(owner, BookingStatus.APPROVED)
        with pytest.raises(InvalidStatusTransitionException, match="already started"):
            machine.cancel(b, owner, now=DURING)
        with pytest.raises(InvalidStatusTransitionException):
            machine.cancel(b, manager, now=START)
        assert b.status == BookingStatus.APPROVED

    def test_cannot_cancel_completed(self, machine, owner):
        b = make_booking(owner, BookingStatus.COMPLETED)
        with pytest.raises(InvalidStatusTransitionException, match="already completed"):
            machine.cancel(b, owner, now=BEFORE)


class TestComplete:
    def test_manager_completes_after_end(self, machine, owner, manager):
        b = make_booking(owner, BookingStatus.APPROVED)
        machine.complete(b, manager, now=AFTER)
        assert b.status == BookingStatus.COMPLETED

    def test_system_completion_has_no_actor(self, machine, owner):
        b = make_booking(owner, BookingStatus.APPROVED)
        machine.complete(b, None, now=END)
        assert b.status == BookingStatus.COMPLETED
        assert b.status_changed_by is None
        assert b.status_changed_at == END

    def test_not_before_end(self, machine, owner, manager):
        b = make_booking(owner, BookingStatus.APPROVED)
        with pytest.raises(InvalidStatusTransitionException, match="not finished"):
            machine.complete(b, manager, now=DURING)
        assert b.status == BookingStatus.APPROVED

    def test_pending_cannot_complete(self, machine, owner, manager):
        b = make_booking(owner)
        with pytest.raises(InvalidStatusTransitionException):
            machine.complete(b, manager, now=AFTER)

    def test_driver_cannot_complete(self, machine, owner):
        b = make_booking(owner, BookingStatus.APPROVED)
        with pytest.raises(ForbiddenException):
            machine.complete(b, owner, now=AFTER)
