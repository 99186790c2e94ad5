import uuid
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional

from fleetdesk.database import get_db
from fleetdesk.dependencies import get_current_actor, get_manager, get_admin
from fleetdesk.models.profile import UserRole
from fleetdesk.schemas.profile import ProfileUpdateRequest, ProfileAdminUpdateRequest
from fleetdesk.schemas.common import Page, page_params, success_response, paginated_response
from fleetdesk.services.permissions import Actor
from fleetdesk.services.profile_service import profile_service

router = APIRouter(prefix="/profiles")


@router.get("/me", summary="Get my profile")
def get_me(db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)):
    return success_response("Profile retrieved", profile_service.get_me(db, actor))


@router.put("/me", summary="Update my profile")
def update_me(
    body:  ProfileUpdateRequest,
    db:    Session = Depends(get_db),
    actor: Actor   = Depends(get_current_actor),
):
    return success_response("Profile updated", profile_service.update_me(db, body, actor))


@router.get("", summary="List organization members (Manager)")
def list_profiles(
    page:      Page               = Depends(page_params),
    search:    Optional[str]      = Query(None),
    role:      Optional[UserRole] = Query(None),
    is_active: Optional[bool]     = Query(None),
    db:        Session            = Depends(get_db),
    actor:     Actor              = Depends(get_manager),
):
    data, total = profile_service.list_profiles(db, actor, page, search, role, is_active)
    return paginated_response("Users retrieved successfully", data, total, page)


@router.get("/{profile_id}", summary="Get a member profile")
def get_profile(
    profile_id: uuid.UUID,
    db:         Session = Depends(get_db),
    actor:      Actor   = Depends(get_current_actor),
):
    return success_response("Profile retrieved", profile_service.get_profile(db, profile_id, actor))


@router.put("/{profile_id}", summary="Change role or active flag (Admin)")
def update_profile(
    profile_id: uuid.UUID,
    body:       ProfileAdminUpdateRequest,
    db:         Session = Depends(get_db),
    actor:      Actor   = Depends(get_admin),
):
    return success_response("Profile updated", profile_service.update_profile(db, profile_id, body, actor))
