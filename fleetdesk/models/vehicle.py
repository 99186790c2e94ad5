import enum
import uuid
from sqlalchemy import Column, Integer, String, ForeignKey, Uuid, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from fleetdesk.database import Base
from fleetdesk.models.types import UTCDateTime, value_enum


class VehicleStatus(str, enum.Enum):
    AVAILABLE      = "available"
    BOOKED         = "booked"
    MAINTENANCE    = "maintenance"
    OUT_OF_SERVICE = "out_of_service"
    RETIRED        = "retired"


class Vehicle(Base):
    __tablename__ = "vehicles"
    __table_args__ = (
        UniqueConstraint("organization_id", "license_plate", name="unique_license_plate_per_org"),
        CheckConstraint("seats > 0 AND seats <= 50", name="vehicles_seats_check"),
        CheckConstraint("current_mileage >= 0", name="vehicles_current_mileage_check"),
    )

    id              = Column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id = Column(Uuid, ForeignKey("organizations.id"), nullable=False, index=True)
    make            = Column(String(100), nullable=False)
    model           = Column(String(100), nullable=False)
    year            = Column(Integer, nullable=False)
    license_plate   = Column(String(20), nullable=False)
    seats           = Column(Integer, default=5, nullable=False)
    # Coarse pre-filter only; schedule conflicts are decided per booking interval
    status          = Column(value_enum(VehicleStatus, "car_status_enum"),
                             default=VehicleStatus.AVAILABLE, nullable=False, index=True)
    parking_spot    = Column(String(100), nullable=True)
    current_mileage = Column(Integer, nullable=True)
    created_at      = Column(UTCDateTime, server_default=func.now(), nullable=False)
    updated_at      = Column(UTCDateTime, server_default=func.now(),
                             onupdate=func.now(), nullable=False)

    # ─── Relationships ─────────────────────────────────────────────────────────
    organization = relationship("Organization", back_populates="vehicles")
    bookings     = relationship("Booking", back_populates="vehicle")

    @property
    def display_name(self) -> str:
        return f"{self.make} {self.model}"

    def __repr__(self):
        return f"<Vehicle id={self.id} plate={self.license_plate} status={self.status}>"
