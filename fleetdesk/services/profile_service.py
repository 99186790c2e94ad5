import uuid
from sqlalchemy.orm import Session
from sqlalchemy import or_

from fleetdesk.models.profile import Profile, UserRole
from fleetdesk.schemas.profile import ProfileUpdateRequest, ProfileAdminUpdateRequest
from fleetdesk.schemas.common import Page
from fleetdesk.services.permissions import Actor, require_manager
from fleetdesk.utils.audit import log_action
from fleetdesk.utils.exceptions import NotFoundException, ForbiddenException


def _serialize_profile(p: Profile) -> dict:
    return {
        "id":              str(p.id),
        "email":           p.email,
        "first_name":      p.first_name,
        "last_name":       p.last_name,
        "phone":           p.phone,
        "role":            p.role.value,
        "is_active":       p.is_active,
        "organization_id": str(p.organization_id) if p.organization_id else None,
        "created_at":      p.created_at.isoformat() if p.created_at else None,
    }


class ProfileService:

    def _get_in_org(self, db: Session, profile_id: uuid.UUID, actor: Actor) -> Profile:
        p = db.query(Profile).filter(
            Profile.id == profile_id,
            Profile.organization_id == actor.organization_id,
        ).first()
        if not p:
            raise NotFoundException("User profile")
        return p

    # ─── Own profile ──────────────────────────────────────────────────────────
    def get_me(self, db: Session, actor: Actor) -> dict:
        return _serialize_profile(self._get_in_org(db, actor.user_id, actor))

    def update_me(self, db: Session, data: ProfileUpdateRequest, actor: Actor) -> dict:
        p = self._get_in_org(db, actor.user_id, actor)
        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(p, field, value)
        log_action(db, actor.user_id, "UPDATE", p, "Profile updated")
        db.commit()
        db.refresh(p)
        return _serialize_profile(p)

    # ─── Organization members ─────────────────────────────────────────────────
    def list_profiles(
        self, db: Session, actor: Actor, page: Page,
        search: str | None, role: UserRole | None, is_active: bool | None,
    ) -> tuple[list[dict], int]:
        require_manager(actor, "Access denied - only managers can list users")
        q = db.query(Profile).filter(Profile.organization_id == actor.organization_id)

        if search:
            kw = f"%{search}%"
            q = q.filter(or_(
                Profile.first_name.ilike(kw),
                Profile.last_name.ilike(kw),
                Profile.email.ilike(kw),
            ))
        if role is not None:
            q = q.filter(Profile.role == role)
        if is_active is not None:
            q = q.filter(Profile.is_active == is_active)

        total = q.count()
        items = q.order_by(Profile.last_name, Profile.first_name)\
                 .offset(page.offset).limit(page.limit).all()
        return [_serialize_profile(p) for p in items], total

    def get_profile(self, db: Session, profile_id: uuid.UUID, actor: Actor) -> dict:
        if profile_id != actor.user_id and not actor.can_view_all:
            raise ForbiddenException("Access denied - you can only view your own profile")
        return _serialize_profile(self._get_in_org(db, profile_id, actor))

    def update_profile(
        self, db: Session, profile_id: uuid.UUID, data: ProfileAdminUpdateRequest, actor: Actor,
    ) -> dict:
        if not actor.is_admin:
            raise ForbiddenException("Access denied - only admins can change roles or deactivate users")
        if profile_id == actor.user_id and (
            (data.role is not None and data.role != UserRole.ADMIN) or data.is_active is False
        ):
            raise ForbiddenException("You cannot demote or deactivate your own account")

        p = self._get_in_org(db, profile_id, actor)
        if data.role is not None:
            p.role = data.role
        if data.is_active is not None:
            p.is_active = data.is_active
        log_action(db, actor.user_id, "UPDATE", p,
                   f"Role={p.role.value}, active={p.is_active}")
        db.commit()
        db.refresh(p)
        return _serialize_profile(p)


profile_service = ProfileService()
