from dataclasses import dataclass
import uuid

from fleetdesk.models.profile import UserRole, MANAGER_ROLES
from fleetdesk.utils.exceptions import ForbiddenException


@dataclass(frozen=True)
class Actor:
    """Who is making the request, as resolved from the bearer token and profile."""
    user_id:         uuid.UUID
    organization_id: uuid.UUID
    role:            UserRole

    @property
    def can_view_all(self) -> bool:
        """Managers see every booking of the organization; everyone else only their own."""
        return self.role in MANAGER_ROLES

    @property
    def can_manage(self) -> bool:
        return self.role in MANAGER_ROLES

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @classmethod
    def from_profile(cls, profile) -> "Actor":
        return cls(user_id=profile.id, organization_id=profile.organization_id, role=profile.role)


def require_same_organization(actor: Actor, organization_id, message: str) -> None:
    if actor.organization_id != organization_id:
        raise ForbiddenException(message)


def require_manager(actor: Actor, message: str) -> None:
    if not actor.can_manage:
        raise ForbiddenException(message)
