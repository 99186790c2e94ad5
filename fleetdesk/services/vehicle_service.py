import logging
import uuid
from datetime import datetime
from sqlalchemy.orm import Session

from fleetdesk.models.booking import LIVE_STATUSES
from fleetdesk.models.vehicle import Vehicle, VehicleStatus
from fleetdesk.schemas.vehicle import VehicleCreateRequest, VehicleStatusRequest, VehicleUpdateRequest
from fleetdesk.schemas.common import Page
from fleetdesk.services.booking_store import BookingQuery, SqlAlchemyBookingStore
from fleetdesk.services.conflict_resolver import ConflictResolver
from fleetdesk.services.intervals import TimeRange
from fleetdesk.services.permissions import Actor, require_manager
from fleetdesk.utils.audit import log_action
from fleetdesk.utils.exceptions import NotFoundException, DuplicateEntryException, VehicleInUseException

logger = logging.getLogger(__name__)

# Statuses that take a vehicle out of the fleet; live bookings must be cleared first
WITHDRAWN_STATUSES = frozenset({VehicleStatus.RETIRED, VehicleStatus.OUT_OF_SERVICE})

# Columns an edit may not null out
_REQUIRED_FIELDS = ("make", "model", "year", "license_plate", "seats")


def _serialize(v: Vehicle) -> dict:
    return {
        "id":              str(v.id),
        "organization_id": str(v.organization_id),
        "make":            v.make,
        "model":           v.model,
        "year":            v.year,
        "license_plate":   v.license_plate,
        "seats":           v.seats,
        "status":          v.status.value,
        "parking_spot":    v.parking_spot,
        "current_mileage": v.current_mileage,
    }


class VehicleService:

    def list_vehicles(
        self, db: Session, actor: Actor, page: Page,
        status: VehicleStatus | None, available_only: bool = False,
    ) -> tuple[list[dict], int]:
        q = db.query(Vehicle).filter(Vehicle.organization_id == actor.organization_id)
        if available_only:
            q = q.filter(Vehicle.status == VehicleStatus.AVAILABLE)
        elif status:
            q = q.filter(Vehicle.status == status)

        total = q.count()
        items = q.order_by(Vehicle.make, Vehicle.model, Vehicle.license_plate)\
                 .offset(page.offset).limit(page.limit).all()
        return [_serialize(v) for v in items], total

    def _get_in_org(self, db: Session, vehicle_id: uuid.UUID, actor: Actor, lock: bool = False) -> Vehicle:
        v = SqlAlchemyBookingStore(db).get_vehicle(vehicle_id, lock=lock)
        if not v or v.organization_id != actor.organization_id:
            raise NotFoundException("Vehicle")
        return v

    def _ensure_plate_free(self, db: Session, plate: str, actor: Actor, exclude_id: uuid.UUID | None = None):
        q = db.query(Vehicle).filter(
            Vehicle.organization_id == actor.organization_id,
            Vehicle.license_plate == plate,
        )
        if exclude_id is not None:
            q = q.filter(Vehicle.id != exclude_id)
        if q.first():
            raise DuplicateEntryException("License plate already registered", field="license_plate")

    def get_vehicle(self, db: Session, vehicle_id: uuid.UUID, actor: Actor) -> dict:
        return _serialize(self._get_in_org(db, vehicle_id, actor))

    def create_vehicle(self, db: Session, data: VehicleCreateRequest, actor: Actor) -> dict:
        require_manager(actor, "Access denied - only managers can add vehicles")
        self._ensure_plate_free(db, data.license_plate, actor)

        v = Vehicle(
            organization_id=actor.organization_id,
            make=data.make,
            model=data.model,
            year=data.year,
            license_plate=data.license_plate,
            seats=data.seats,
            parking_spot=data.parking_spot,
            current_mileage=data.current_mileage,
            status=VehicleStatus.AVAILABLE,
        )
        db.add(v)
        db.flush()
        log_action(db, actor.user_id, "CREATE", v,
                   f"Created vehicle {data.license_plate} ({data.make} {data.model})")
        db.commit()
        db.refresh(v)
        return _serialize(v)

    def update_vehicle(self, db: Session, vehicle_id: uuid.UUID, data: VehicleUpdateRequest, actor: Actor) -> dict:
        require_manager(actor, "Access denied - only managers can edit vehicles")
        v = self._get_in_org(db, vehicle_id, actor)
        changes = {
            field: value for field, value in data.model_dump(exclude_unset=True).items()
            if value is not None or field not in _REQUIRED_FIELDS
        }
        if changes.get("license_plate") and changes["license_plate"] != v.license_plate:
            self._ensure_plate_free(db, changes["license_plate"], actor, exclude_id=v.id)

        for field, value in changes.items():
            setattr(v, field, value)
        log_action(db, actor.user_id, "UPDATE", v,
                   f"Updated {', '.join(sorted(changes)) or 'nothing'} on {v.license_plate}")
        db.commit()
        db.refresh(v)
        return _serialize(v)

    def update_status(self, db: Session, vehicle_id: uuid.UUID, data: VehicleStatusRequest, actor: Actor) -> dict:
        require_manager(actor, "Access denied - only managers can change vehicle status")
        withdrawing = data.status in WITHDRAWN_STATUSES
        # lock so no booking can be created between the check and the change
        v = self._get_in_org(db, vehicle_id, actor, lock=withdrawing)
        if withdrawing:
            live = SqlAlchemyBookingStore(db).find_bookings(
                BookingQuery(vehicle_id=v.id, statuses=LIVE_STATUSES)
            )
            if live:
                logger.info(f"Refused to set vehicle {v.id} {data.status.value}: {len(live)} live booking(s)")
                raise VehicleInUseException(live)

        old = v.status
        v.status = data.status
        log_action(db, actor.user_id, "STATUS_CHANGE", v,
                   f"Status {old.value} → {data.status.value}" + (f": {data.reason}" if data.reason else ""))
        db.commit()
        db.refresh(v)
        return _serialize(v)

    def check_availability(
        self, db: Session, vehicle_id: uuid.UUID, start: datetime, end: datetime, actor: Actor,
    ) -> dict:
        """Coarse status first, then the same interval check bookings are created with."""
        window = TimeRange(start, end)
        v = self._get_in_org(db, vehicle_id, actor)
        if v.status != VehicleStatus.AVAILABLE:
            return {"available": False, "reason": f"Vehicle is {v.status.value}", "conflicts": []}

        result = ConflictResolver(SqlAlchemyBookingStore(db)).check_conflict(v.id, window.start, window.end)
        return {
            "available": not result.conflicting,
            "reason":    "Vehicle is already booked for this time period" if result.conflicting else None,
            "conflicts": [{
                "id":         str(b.id),
                "status":     b.status.value,
                "start_time": b.start_time.isoformat(),
                "end_time":   b.end_time.isoformat(),
            } for b in result.conflicts],
        }


vehicle_service = VehicleService()
