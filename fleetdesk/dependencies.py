import uuid

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from fleetdesk.database import get_db
from fleetdesk.models.profile import Profile, UserRole
from fleetdesk.services.permissions import Actor
from fleetdesk.utils.security import verify_access_token
from fleetdesk.utils.exceptions import (
    UnauthorizedException,
    ForbiddenException,
    AccountInactiveException,
)

# Bearer token extractor
bearer_scheme = HTTPBearer(auto_error=False)


# ─── Get Current Actor ────────────────────────────────────────────────────────
def get_current_actor(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> Actor:
    """
    Verify the identity-service Bearer token and resolve it to an Actor.
    Raises 401 if token is missing, invalid, expired, or names no profile.
    Raises 403 if the profile is inactive or has no organization.
    """
    if not credentials:
        raise UnauthorizedException("No authentication token provided")

    payload = verify_access_token(credentials.credentials)
    try:
        user_id = uuid.UUID(str(payload["sub"]))
    except ValueError:
        raise UnauthorizedException("Invalid token payload")

    profile = db.query(Profile).filter(Profile.id == user_id).first()
    if not profile:
        raise UnauthorizedException("No profile exists for this token")

    if not profile.is_active:
        raise AccountInactiveException()

    if profile.organization_id is None:
        raise ForbiddenException("Your profile is not attached to an organization")

    return Actor.from_profile(profile)


# ─── Role Guards ──────────────────────────────────────────────────────────────
def require_roles(*roles: UserRole):
    """
    Factory that returns a FastAPI dependency requiring one of the given roles.

    Usage:
        @router.get("/admin-only")
        def admin_route(actor: Actor = Depends(require_roles(UserRole.ADMIN))):
            ...
    """
    def dependency(actor: Actor = Depends(get_current_actor)) -> Actor:
        if actor.role not in roles:
            raise ForbiddenException(
                f"This action requires one of these roles: {[r.value for r in roles]}"
            )
        return actor
    return dependency


# ─── Pre-built role dependencies ─────────────────────────────────────────────
def get_admin(actor: Actor = Depends(require_roles(UserRole.ADMIN))) -> Actor:
    return actor

def get_manager(
    actor: Actor = Depends(require_roles(UserRole.ADMIN, UserRole.FLEET_MANAGER))
) -> Actor:
    return actor
