from sqlalchemy import func
from sqlalchemy.orm import Session

from fleetdesk.models.booking import Booking
from fleetdesk.models.organization import Organization
from fleetdesk.models.profile import Profile
from fleetdesk.models.vehicle import Vehicle
from fleetdesk.schemas.organization import OrganizationUpdateRequest
from fleetdesk.services.permissions import Actor, require_manager
from fleetdesk.utils.audit import log_action
from fleetdesk.utils.exceptions import NotFoundException, ForbiddenException


def _serialize_org(org: Organization) -> dict:
    return {
        "id":                str(org.id),
        "name":              org.name,
        "email":             org.email,
        "phone":             org.phone,
        "status":            org.status.value,
        "subscription_plan": org.subscription_plan,
    }


class OrganizationService:

    def _get_mine(self, db: Session, actor: Actor) -> Organization:
        org = db.query(Organization).filter(Organization.id == actor.organization_id).first()
        if not org:
            raise NotFoundException("Organization")
        return org

    def get_mine(self, db: Session, actor: Actor) -> dict:
        return _serialize_org(self._get_mine(db, actor))

    def update_mine(self, db: Session, data: OrganizationUpdateRequest, actor: Actor) -> dict:
        if not actor.is_admin:
            raise ForbiddenException("Only administrators can update organization details")
        org = self._get_mine(db, actor)
        changes = {
            field: value for field, value in data.model_dump(exclude_unset=True).items()
            if value is not None or field == "phone"
        }
        for field, value in changes.items():
            setattr(org, field, value)
        log_action(db, actor.user_id, "UPDATE", org,
                   f"Updated {', '.join(sorted(changes)) or 'nothing'}")
        db.commit()
        db.refresh(org)
        return _serialize_org(org)

    def get_stats(self, db: Session, actor: Actor) -> dict:
        """Head counts for the manager dashboard."""
        require_manager(actor, "Access denied - only managers can view organization stats")
        org_id = actor.organization_id

        vehicles = dict(
            db.query(Vehicle.status, func.count(Vehicle.id))
              .filter(Vehicle.organization_id == org_id)
              .group_by(Vehicle.status).all()
        )
        bookings = dict(
            db.query(Booking.status, func.count(Booking.id))
              .join(Vehicle, Booking.vehicle_id == Vehicle.id)
              .filter(Vehicle.organization_id == org_id)
              .group_by(Booking.status).all()
        )
        members = db.query(func.count(Profile.id)).filter(
            Profile.organization_id == org_id, Profile.is_active.is_(True),
        ).scalar()

        return {
            "vehicles": {
                "total":     sum(vehicles.values()),
                "by_status": {s.value: n for s, n in vehicles.items()},
            },
            "bookings": {
                "total":     sum(bookings.values()),
                "by_status": {s.value: n for s, n in bookings.items()},
            },
            "active_members": members or 0,
        }


organization_service = OrganizationService()
