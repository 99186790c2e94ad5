"""
Audit trail for bookings, vehicles and profiles.

Rows are added to the caller's session and committed with the change they
describe, so a rolled-back write leaves no audit entry behind.
"""

from sqlalchemy.orm import Session

from fleetdesk.models.audit_log import AuditLog


def _key(entity) -> tuple[str, str]:
    return type(entity).__name__, str(entity.id)


def log_action(db: Session, user_id, action: str, entity, description: str | None = None) -> AuditLog:
    """
    Queue an audit entry for ``entity`` (any model with an ``id``).

    ``user_id`` is the acting profile, or None for system actions such as
    the elapsed-booking sweep. The entity must already have its id, so flush
    new rows first.
    """
    entity_type, entity_id = _key(entity)
    entry = AuditLog(
        user_id=user_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        description=description,
    )
    db.add(entry)
    return entry


def history(db: Session, entity) -> list[AuditLog]:
    """Every audit entry for ``entity``, oldest first."""
    entity_type, entity_id = _key(entity)
    return db.query(AuditLog).filter(
        AuditLog.entity_type == entity_type,
        AuditLog.entity_id == entity_id,
    ).order_by(AuditLog.created_at.asc(), AuditLog.id.asc()).all()
