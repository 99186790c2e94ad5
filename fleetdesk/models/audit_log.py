from sqlalchemy import Column, Integer, String, Text, ForeignKey, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from fleetdesk.database import Base
from fleetdesk.models.types import UTCDateTime


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id          = Column(Integer, primary_key=True, autoincrement=True)
    user_id     = Column(Uuid, ForeignKey("profiles.id"), nullable=True)  # NULL = system action
    action      = Column(String(100), nullable=False)       # e.g. CREATE, UPDATE, APPROVE, CANCEL
    entity_type = Column(String(100), nullable=False)       # e.g. Booking, Vehicle, Profile
    entity_id   = Column(String(64), nullable=True, index=True)
    description = Column(Text, nullable=True)
    created_at  = Column(UTCDateTime, server_default=func.now(), nullable=False)

    # ─── Relationships ─────────────────────────────────────────────────────────
    user = relationship("Profile", back_populates="audit_logs")

    def __repr__(self):
        return f"<AuditLog id={self.id} action={self.action} entity={self.entity_type}:{self.entity_id}>"
