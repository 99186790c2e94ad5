import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime

from fleetdesk.models.booking import Booking, LIVE_STATUSES
from fleetdesk.services.booking_store import BookingQuery, BookingStore
from fleetdesk.services.intervals import TimeRange

logger = logging.getLogger(__name__)


@dataclass
class ConflictResult:
    conflicting: bool
    conflicts:   list[Booking] = field(default_factory=list)


class ConflictResolver:
    """
    Decides whether a candidate interval on a vehicle collides with a live booking.

    All live bookings of the vehicle are loaded and the overlap rule is applied
    here, so each conflict is reported with its own id and interval. A failed
    read propagates as StoreUnavailableException; it is never read as "free".
    """

    def __init__(self, store: BookingStore):
        self.store = store

    def check_conflict(
        self,
        vehicle_id: uuid.UUID,
        candidate_start: datetime,
        candidate_end: datetime,
        exclude_booking_id: uuid.UUID | None = None,
    ) -> ConflictResult:
        candidate = TimeRange(candidate_start, candidate_end)
        live = self.store.find_bookings(BookingQuery(
            vehicle_id=vehicle_id,
            statuses=LIVE_STATUSES,
        ))
        conflicts = [
            b for b in live
            if b.id != exclude_booking_id
            and b.status in LIVE_STATUSES
            and candidate.overlaps(b.start_time, b.end_time)
        ]
        conflicts.sort(key=lambda b: b.start_time)

        if conflicts:
            logger.warning(
                f"Vehicle {vehicle_id}: [{candidate.start.isoformat()}, {candidate.end.isoformat()}) "
                f"conflicts with {[str(b.id) for b in conflicts]}"
            )
        return ConflictResult(conflicting=bool(conflicts), conflicts=conflicts)
