import enum
import uuid
from sqlalchemy import Column, String, Boolean, ForeignKey, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from fleetdesk.database import Base
from fleetdesk.models.types import UTCDateTime, value_enum


class UserRole(str, enum.Enum):
    ADMIN         = "admin"
    FLEET_MANAGER = "fleet_manager"
    DRIVER        = "driver"
    VIEWER        = "viewer"


MANAGER_ROLES = frozenset({UserRole.ADMIN, UserRole.FLEET_MANAGER})


class Profile(Base):
    __tablename__ = "profiles"

    # Same id as the identity-service user
    id              = Column(Uuid, primary_key=True, default=uuid.uuid4)
    email           = Column(String(255), nullable=False, index=True)
    first_name      = Column(String(150), nullable=False)
    last_name       = Column(String(150), nullable=False, default="")
    phone           = Column(String(50), nullable=True)
    organization_id = Column(Uuid, ForeignKey("organizations.id"), nullable=True, index=True)
    role            = Column(value_enum(UserRole, "user_role_enum"), default=UserRole.DRIVER, nullable=False)
    is_active       = Column(Boolean, default=True, nullable=False)
    created_at      = Column(UTCDateTime, server_default=func.now(), nullable=False)
    updated_at      = Column(UTCDateTime, server_default=func.now(),
                             onupdate=func.now(), nullable=False)

    # ─── Relationships ─────────────────────────────────────────────────────────
    organization = relationship("Organization", back_populates="profiles")
    bookings     = relationship("Booking", foreign_keys="Booking.user_id", back_populates="user")
    audit_logs   = relationship("AuditLog", back_populates="user")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __repr__(self):
        return f"<Profile id={self.id} email={self.email} role={self.role}>"
