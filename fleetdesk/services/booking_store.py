"""
Persistence handle for bookings.

Services and the conflict resolver receive a store instead of reaching for a
global client, so tests can hand them an in-memory fake. Reads are described
by a typed ``BookingQuery`` rather than ad-hoc filter dicts.
"""

import logging
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Protocol

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from fleetdesk.models.booking import Booking, BookingStatus, OVERLAP_CONSTRAINT
from fleetdesk.models.vehicle import Vehicle
from fleetdesk.services.intervals import TimeRange
from fleetdesk.utils.exceptions import StoreUnavailableException

logger = logging.getLogger(__name__)

# Postgres SQLSTATE for exclusion_violation
EXCLUSION_VIOLATION = "23P01"


class OverlapConstraintViolation(Exception):
    """The database rejected a write because it would overlap a live booking."""


@dataclass(frozen=True)
class BookingQuery:
    vehicle_id:      uuid.UUID | None = None
    organization_id: uuid.UUID | None = None
    user_id:         uuid.UUID | None = None
    statuses:        frozenset[BookingStatus] | None = None
    exclude_id:      uuid.UUID | None = None
    window:          TimeRange | None = None    # bookings overlapping this range
    starts_from:     datetime | None = None     # start_time >= value
    ends_by:         datetime | None = None     # end_time <= value
    ended_before:    datetime | None = None     # end_time < value
    newest_first:    bool = False
    offset:          int = 0
    limit:           int | None = None


class BookingStore(Protocol):
    def find_bookings(self, query: BookingQuery) -> list[Booking]: ...
    def count_bookings(self, query: BookingQuery) -> int: ...
    def get_booking(self, booking_id: uuid.UUID) -> Booking | None: ...
    def get_vehicle(self, vehicle_id: uuid.UUID, lock: bool = False) -> Vehicle | None: ...
    def add_booking(self, booking: Booking) -> Booking: ...
    def flush(self) -> None: ...
    def commit(self) -> None: ...
    def rollback(self) -> None: ...
    def refresh(self, obj) -> None: ...


def _is_overlap_violation(exc: IntegrityError) -> bool:
    orig = exc.orig
    return getattr(orig, "pgcode", None) == EXCLUSION_VIOLATION or OVERLAP_CONSTRAINT in str(orig)


class SqlAlchemyBookingStore:
    """BookingStore backed by the request's SQLAlchemy session."""

    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def _guard(self, action: str):
        try:
            yield
        except IntegrityError as exc:
            if _is_overlap_violation(exc):
                raise OverlapConstraintViolation(str(exc.orig)) from exc
            raise
        except SQLAlchemyError as exc:
            logger.error(f"Booking store failed during {action}: {exc}")
            raise StoreUnavailableException() from exc

    def _filtered(self, query: BookingQuery):
        q = self.db.query(Booking)
        if query.organization_id is not None:
            q = q.join(Vehicle, Booking.vehicle_id == Vehicle.id)\
                 .filter(Vehicle.organization_id == query.organization_id)
        if query.vehicle_id is not None:
            q = q.filter(Booking.vehicle_id == query.vehicle_id)
        if query.user_id is not None:
            q = q.filter(Booking.user_id == query.user_id)
        if query.statuses is not None:
            q = q.filter(Booking.status.in_(_sorted(query.statuses)))
        if query.exclude_id is not None:
            q = q.filter(Booking.id != query.exclude_id)
        if query.window is not None:
            q = q.filter(Booking.start_time < query.window.end, Booking.end_time > query.window.start)
        if query.starts_from is not None:
            q = q.filter(Booking.start_time >= query.starts_from)
        if query.ends_by is not None:
            q = q.filter(Booking.end_time <= query.ends_by)
        if query.ended_before is not None:
            q = q.filter(Booking.end_time < query.ended_before)
        return q

    def find_bookings(self, query: BookingQuery) -> list[Booking]:
        with self._guard("find_bookings"):
            q = self._filtered(query)
            order = Booking.start_time.desc() if query.newest_first else Booking.start_time.asc()
            q = q.order_by(order, Booking.id)
            if query.offset:
                q = q.offset(query.offset)
            if query.limit is not None:
                q = q.limit(query.limit)
            return q.all()

    def count_bookings(self, query: BookingQuery) -> int:
        with self._guard("count_bookings"):
            return self._filtered(query).count()

    def get_booking(self, booking_id: uuid.UUID) -> Booking | None:
        with self._guard("get_booking"):
            return self.db.query(Booking).filter(Booking.id == booking_id).first()

    def get_vehicle(self, vehicle_id: uuid.UUID, lock: bool = False) -> Vehicle | None:
        """Load a vehicle; ``lock`` takes a row lock so schedule changes for it serialize."""
        with self._guard("get_vehicle"):
            q = self.db.query(Vehicle).filter(Vehicle.id == vehicle_id)
            if lock:
                q = q.with_for_update()
            return q.first()

    def add_booking(self, booking: Booking) -> Booking:
        with self._guard("add_booking"):
            self.db.add(booking)
            self.db.flush()
        return booking

    def flush(self) -> None:
        with self._guard("flush"):
            self.db.flush()

    def commit(self) -> None:
        with self._guard("commit"):
            self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()

    def refresh(self, obj) -> None:
        with self._guard("refresh"):
            self.db.refresh(obj)


def _sorted(statuses: Iterable[BookingStatus]) -> list[BookingStatus]:
    return sorted(statuses, key=lambda s: s.value)
