import enum
import uuid
from sqlalchemy import Column, Integer, Text, ForeignKey, Uuid, CheckConstraint, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from fleetdesk.database import Base
from fleetdesk.models.types import UTCDateTime, value_enum


class BookingStatus(str, enum.Enum):
    PENDING   = "pending"
    APPROVED  = "approved"
    REJECTED  = "rejected"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


# Statuses that still block other reservations of the same vehicle
LIVE_STATUSES     = frozenset({BookingStatus.PENDING, BookingStatus.APPROVED})
TERMINAL_STATUSES = frozenset({BookingStatus.REJECTED, BookingStatus.CANCELLED, BookingStatus.COMPLETED})

# Postgres-only exclusion constraint, created by the initial migration
OVERLAP_CONSTRAINT = "bookings_no_overlap"


class Booking(Base):
    __tablename__ = "bookings"
    __table_args__ = (
        CheckConstraint("end_time > start_time", name="valid_booking_times"),
        CheckConstraint("passenger_count > 0", name="bookings_passenger_count_check"),
        Index("ix_bookings_vehicle_window", "vehicle_id", "start_time", "end_time"),
    )

    id                = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id           = Column(Uuid, ForeignKey("profiles.id"), nullable=False, index=True)
    vehicle_id        = Column(Uuid, ForeignKey("vehicles.id"), nullable=False, index=True)
    start_time        = Column(UTCDateTime, nullable=False)
    end_time          = Column(UTCDateTime, nullable=False)
    reason            = Column(Text, nullable=True)
    destination       = Column(Text, nullable=True)
    notes             = Column(Text, nullable=True)
    passenger_count   = Column(Integer, default=1, nullable=False)
    status            = Column(value_enum(BookingStatus, "booking_status_enum"),
                               default=BookingStatus.PENDING, nullable=False, index=True)
    rejection_reason  = Column(Text, nullable=True)
    status_changed_by = Column(Uuid, ForeignKey("profiles.id"), nullable=True)
    status_changed_at = Column(UTCDateTime, nullable=True)
    created_at        = Column(UTCDateTime, server_default=func.now(), nullable=False)
    updated_at        = Column(UTCDateTime, server_default=func.now(),
                               onupdate=func.now(), nullable=False)

    # ─── Relationships ─────────────────────────────────────────────────────────
    user       = relationship("Profile", foreign_keys=[user_id], back_populates="bookings")
    vehicle    = relationship("Vehicle", back_populates="bookings")
    changed_by = relationship("Profile", foreign_keys=[status_changed_by])

    @property
    def is_live(self) -> bool:
        return self.status in LIVE_STATUSES

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def __repr__(self):
        return f"<Booking id={self.id} status={self.status} vehicle_id={self.vehicle_id}>"
