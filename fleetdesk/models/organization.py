import enum
import uuid
from sqlalchemy import Column, String, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from fleetdesk.database import Base
from fleetdesk.models.types import UTCDateTime, value_enum


class OrganizationStatus(str, enum.Enum):
    PENDING   = "pending"
    ACTIVE    = "active"
    SUSPENDED = "suspended"
    CANCELLED = "cancelled"


class Organization(Base):
    __tablename__ = "organizations"

    id                = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name              = Column(String(255), nullable=False)
    email             = Column(String(255), nullable=False)
    phone             = Column(String(50), nullable=True)
    status            = Column(value_enum(OrganizationStatus, "organization_status_enum"),
                               default=OrganizationStatus.PENDING, nullable=False)
    subscription_plan = Column(String(50), default="trial", nullable=False)
    created_at        = Column(UTCDateTime, server_default=func.now(), nullable=False)
    updated_at        = Column(UTCDateTime, server_default=func.now(),
                               onupdate=func.now(), nullable=False)

    # ─── Relationships ─────────────────────────────────────────────────────────
    profiles = relationship("Profile", back_populates="organization")
    vehicles = relationship("Vehicle", back_populates="organization")

    def __repr__(self):
        return f"<Organization id={self.id} name={self.name} status={self.status}>"
