import logging
import uuid
from datetime import datetime
from sqlalchemy.orm import Session

from fleetdesk.models.booking import Booking, BookingStatus
from fleetdesk.models.vehicle import VehicleStatus
from fleetdesk.schemas.booking import BookingCreateRequest, BookingUpdateRequest, RejectRequest, TimeFilter
from fleetdesk.schemas.common import Page
from fleetdesk.services.booking_state import BookingAction, booking_state_machine
from fleetdesk.services.booking_store import BookingQuery, BookingStore, OverlapConstraintViolation, SqlAlchemyBookingStore
from fleetdesk.services.conflict_resolver import ConflictResolver
from fleetdesk.services.intervals import TimeRange, to_utc, utcnow
from fleetdesk.services.permissions import Actor, require_manager
from fleetdesk.utils.audit import history, log_action
from fleetdesk.utils.exceptions import (
    NotFoundException, ForbiddenException, BookingConflictException,
    InvalidDateRangeException, InvalidStatusTransitionException, VehicleUnavailableException,
)

logger = logging.getLogger(__name__)


def _iso(dt: datetime | None) -> str | None:
    return dt.isoformat() if dt else None


def _serialize(b: Booking) -> dict:
    return {
        "id":     str(b.id),
        "status": b.status.value,
        "vehicle": {
            "id":            str(b.vehicle.id),
            "make":          b.vehicle.make,
            "model":         b.vehicle.model,
            "license_plate": b.vehicle.license_plate,
            "parking_spot":  b.vehicle.parking_spot,
        },
        "user": {
            "id":         str(b.user.id),
            "first_name": b.user.first_name,
            "last_name":  b.user.last_name,
            "email":      b.user.email,
        },
        "start_time":        _iso(b.start_time),
        "end_time":          _iso(b.end_time),
        "reason":            b.reason,
        "destination":       b.destination,
        "notes":             b.notes,
        "passenger_count":   b.passenger_count,
        "rejection_reason":  b.rejection_reason,
        "status_changed_by": str(b.status_changed_by) if b.status_changed_by else None,
        "status_changed_at": _iso(b.status_changed_at),
        "created_at":        _iso(b.created_at),
        "updated_at":        _iso(b.updated_at),
    }


def _calendar_event(b: Booking, actor: Actor) -> dict:
    return {
        "id":          str(b.id),
        "title":       b.vehicle.display_name,
        "start":       _iso(b.start_time),
        "end":         _iso(b.end_time),
        "status":      b.status.value,
        "vehicle":     {"id": str(b.vehicle.id), "make": b.vehicle.make,
                        "model": b.vehicle.model, "license_plate": b.vehicle.license_plate},
        "user":        {"id": str(b.user.id), "first_name": b.user.first_name,
                        "last_name": b.user.last_name},
        "reason":      b.reason,
        "destination": b.destination,
        "is_own":      b.user_id == actor.user_id,
    }


class BookingService:

    def __init__(self, state=booking_state_machine):
        self.state = state

    # ─── Reads ────────────────────────────────────────────────────────────────
    def list_bookings(
        self, db: Session, actor: Actor,
        page: Page | None = None,
        time_filter: TimeFilter = TimeFilter.ALL,
        vehicle_id: uuid.UUID | None = None,
        status: BookingStatus | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
        user_id: uuid.UUID | None = None,
        now: datetime | None = None,
    ) -> tuple[list[dict], int]:
        if user_id and not actor.can_view_all and user_id != actor.user_id:
            raise ForbiddenException("Access denied - you can only view your own bookings")

        page = page or Page()
        now = to_utc(now) if now else utcnow()
        window = starts_from = ends_by = ended_before = None
        if start_date and end_date:
            window = TimeRange(start_date, end_date)
        else:
            starts_from = to_utc(start_date) if start_date else None
            ends_by     = to_utc(end_date) if end_date else None

        if time_filter == TimeFilter.UPCOMING:
            starts_from = max(starts_from, now) if starts_from else now
        elif time_filter == TimeFilter.PAST:
            ended_before = now

        query = BookingQuery(
            organization_id=actor.organization_id,
            user_id=user_id if actor.can_view_all else actor.user_id,
            vehicle_id=vehicle_id,
            statuses=frozenset({status}) if status else None,
            window=window,
            starts_from=starts_from,
            ends_by=ends_by,
            ended_before=ended_before,
            newest_first=True,
            offset=page.offset,
            limit=page.limit,
        )
        store = SqlAlchemyBookingStore(db)
        total = store.count_bookings(query)
        items = store.find_bookings(query)
        return [_serialize(b) for b in items], total

    def get_booking(self, db: Session, booking_id: uuid.UUID, actor: Actor) -> dict:
        b = self._get_in_org(SqlAlchemyBookingStore(db), booking_id, actor)
        if not actor.can_view_all and b.user_id != actor.user_id:
            raise ForbiddenException("Access denied - you can only view your own bookings")
        return _serialize(b)

    def get_calendar(self, db: Session, actor: Actor, start: datetime, end: datetime) -> list[dict]:
        query = BookingQuery(
            organization_id=actor.organization_id,
            user_id=None if actor.can_view_all else actor.user_id,
            window=TimeRange(start, end),
        )
        return [_calendar_event(b, actor) for b in SqlAlchemyBookingStore(db).find_bookings(query)]

    def get_history(self, db: Session, booking_id: uuid.UUID, actor: Actor) -> list[dict]:
        require_manager(actor, "Access denied - only managers can view booking history")
        b = self._get_in_org(SqlAlchemyBookingStore(db), booking_id, actor)
        return [{
            "id":          l.id,
            "user":        {"id": str(l.user.id), "name": l.user.full_name} if l.user else None,
            "action":      l.action,
            "description": l.description,
            "created_at":  _iso(l.created_at),
        } for l in history(db, b)]

    # ─── Create / edit ────────────────────────────────────────────────────────
    def create_booking(
        self, db: Session, data: BookingCreateRequest, actor: Actor,
        now: datetime | None = None,
    ) -> dict:
        now = to_utc(now) if now else utcnow()
        candidate = TimeRange(data.start_time, data.end_time)
        if candidate.start < now:
            raise InvalidDateRangeException("Cannot book in the past", field="start_time")

        store = SqlAlchemyBookingStore(db)
        vehicle = store.get_vehicle(data.vehicle_id, lock=True)
        if not vehicle or vehicle.organization_id != actor.organization_id:
            raise NotFoundException("Vehicle")
        if vehicle.status != VehicleStatus.AVAILABLE:
            raise VehicleUnavailableException(vehicle.status.value)

        self._ensure_free(store, vehicle.id, candidate)

        b = Booking(
            user_id=actor.user_id,
            vehicle_id=vehicle.id,
            start_time=candidate.start,
            end_time=candidate.end,
            reason=data.reason,
            destination=data.destination,
            passenger_count=data.passenger_count,
            notes=data.notes,
            status=BookingStatus.PENDING,
        )
        self._write(store, vehicle.id, candidate, lambda: store.add_booking(b))
        log_action(db, actor.user_id, "CREATE", b,
                   f"Booking requested for {vehicle.display_name} ({vehicle.license_plate})")
        store.commit()
        store.refresh(b)
        logger.info(f"Booking {b.id} created for vehicle {vehicle.id} by {actor.user_id}")
        return _serialize(b)

    def update_booking(
        self, db: Session, booking_id: uuid.UUID, data: BookingUpdateRequest, actor: Actor,
        now: datetime | None = None,
    ) -> dict:
        now = to_utc(now) if now else utcnow()
        store = SqlAlchemyBookingStore(db)
        b = self._get_in_org(store, booking_id, actor)
        if not actor.can_manage and b.user_id != actor.user_id:
            raise ForbiddenException("Access denied - you can only update your own bookings")
        if b.is_terminal:
            raise InvalidStatusTransitionException(
                f"Booking is {b.status.value} and can no longer be modified"
            )

        changes = data.model_dump(exclude_unset=True)
        candidate = None
        if data.start_time or data.end_time:
            candidate = TimeRange(data.start_time or b.start_time, data.end_time or b.end_time)
            if candidate.start != b.start_time and candidate.start < now:
                raise InvalidDateRangeException("Cannot move a booking into the past", field="start_time")
            store.get_vehicle(b.vehicle_id, lock=True)
            self._ensure_free(store, b.vehicle_id, candidate, exclude_id=b.id)
            b.start_time, b.end_time = candidate.start, candidate.end

        for field in ("reason", "destination", "notes"):
            if field in changes:
                setattr(b, field, changes[field])
        if changes.get("passenger_count") is not None:
            b.passenger_count = changes["passenger_count"]

        if candidate is not None:
            self._write(store, b.vehicle_id, candidate, store.flush, exclude_id=b.id)
        log_action(db, actor.user_id, "UPDATE", b,
                   f"Booking updated ({', '.join(sorted(changes)) or 'no fields'})")
        store.commit()
        store.refresh(b)
        return _serialize(b)

    # ─── Status transitions ───────────────────────────────────────────────────
    def approve_booking(
        self, db: Session, booking_id: uuid.UUID, actor: Actor,
        now: datetime | None = None,
    ) -> dict:
        store = SqlAlchemyBookingStore(db)
        b = self._get_existing(store, booking_id)
        self.state.ensure_allowed(BookingAction.APPROVE, b, actor, now)

        # Re-check: the schedule may have changed since the request was made
        store.get_vehicle(b.vehicle_id, lock=True)
        window = TimeRange(b.start_time, b.end_time)
        self._ensure_free(store, b.vehicle_id, window, exclude_id=b.id)

        self.state.approve(b, actor, now)
        self._write(store, b.vehicle_id, window, store.flush, exclude_id=b.id)
        log_action(db, actor.user_id, "APPROVE", b, f"Booking #{b.id} approved")
        store.commit()
        store.refresh(b)
        return _serialize(b)

    def reject_booking(
        self, db: Session, booking_id: uuid.UUID, data: RejectRequest, actor: Actor,
        now: datetime | None = None,
    ) -> dict:
        store = SqlAlchemyBookingStore(db)
        b = self._get_existing(store, booking_id)
        self.state.reject(b, actor, data.reason, now)
        log_action(db, actor.user_id, "REJECT", b,
                   f"Booking #{b.id} rejected" + (f". Reason: {data.reason}" if data.reason else ""))
        store.commit()
        store.refresh(b)
        return _serialize(b)

    def cancel_booking(
        self, db: Session, booking_id: uuid.UUID, actor: Actor,
        now: datetime | None = None,
    ) -> dict:
        store = SqlAlchemyBookingStore(db)
        b = self._get_in_org(store, booking_id, actor)
        self.state.cancel(b, actor, now)
        log_action(db, actor.user_id, "CANCEL", b, f"Booking #{b.id} cancelled")
        store.commit()
        store.refresh(b)
        return _serialize(b)

    def complete_booking(
        self, db: Session, booking_id: uuid.UUID, actor: Actor,
        now: datetime | None = None,
    ) -> dict:
        store = SqlAlchemyBookingStore(db)
        b = self._get_existing(store, booking_id)
        self.state.complete(b, actor, now)
        log_action(db, actor.user_id, "COMPLETE", b, f"Booking #{b.id} completed")
        store.commit()
        store.refresh(b)
        return _serialize(b)

    # ─── Sweep helper (called by cron / manager endpoint) ─────────────────────
    def complete_elapsed(self, db: Session, actor: Actor | None = None, now: datetime | None = None) -> int:
        """Mark approved bookings whose interval has ended as completed. Returns count updated."""
        now = to_utc(now) if now else utcnow()
        store = SqlAlchemyBookingStore(db)
        elapsed = store.find_bookings(BookingQuery(
            organization_id=actor.organization_id if actor else None,
            statuses=frozenset({BookingStatus.APPROVED}),
            ends_by=now,
        ))
        for b in elapsed:
            self.state.complete(b, actor, now)
            log_action(db, actor.user_id if actor else None, "SYSTEM_COMPLETE", b,
                       f"Booking #{b.id} auto-completed")
        if elapsed:
            store.commit()
            logger.info(f"Completed {len(elapsed)} elapsed booking(s)")
        return len(elapsed)

    # ─── Internals ────────────────────────────────────────────────────────────
    def _get_existing(self, store: BookingStore, booking_id: uuid.UUID) -> Booking:
        b = store.get_booking(booking_id)
        if not b:
            raise NotFoundException("Booking")
        return b

    def _get_in_org(self, store: BookingStore, booking_id: uuid.UUID, actor: Actor) -> Booking:
        b = self._get_existing(store, booking_id)
        if b.vehicle.organization_id != actor.organization_id:
            raise ForbiddenException("Access denied - booking not in your organization")
        return b

    def _ensure_free(
        self, store: BookingStore, vehicle_id: uuid.UUID, window: TimeRange,
        exclude_id: uuid.UUID | None = None,
    ) -> None:
        result = ConflictResolver(store).check_conflict(vehicle_id, window.start, window.end, exclude_id)
        if result.conflicting:
            raise BookingConflictException(result.conflicts)

    def _write(
        self, store: BookingStore, vehicle_id: uuid.UUID, window: TimeRange, write,
        exclude_id: uuid.UUID | None = None,
    ) -> None:
        """
        Run a schedule-changing write. If the database's overlap constraint
        rejects it (a concurrent request got there first), roll back and report
        the bookings that now block the window.
        """
        try:
            write()
        except OverlapConstraintViolation:
            store.rollback()
            logger.warning(f"Overlap constraint rejected a write on vehicle {vehicle_id}")
            result = ConflictResolver(store).check_conflict(vehicle_id, window.start, window.end, exclude_id)
            raise BookingConflictException(result.conflicts)


booking_service = BookingService()
