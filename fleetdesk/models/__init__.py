"""
Every table, imported once so string relationships ("Booking", "Profile")
resolve and Alembic sees the full metadata. Parents before children.
"""

from fleetdesk.models.organization import Organization, OrganizationStatus
from fleetdesk.models.profile import Profile, UserRole
from fleetdesk.models.vehicle import Vehicle, VehicleStatus
from fleetdesk.models.booking import Booking, BookingStatus
from fleetdesk.models.audit_log import AuditLog

__all__ = [
    "Organization",
    "OrganizationStatus",
    "Profile",
    "UserRole",
    "Vehicle",
    "VehicleStatus",
    "Booking",
    "BookingStatus",
    "AuditLog",
]
