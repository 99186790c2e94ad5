from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from fleetdesk.database import get_db
from fleetdesk.dependencies import get_admin, get_current_actor, get_manager
from fleetdesk.schemas.common import success_response
from fleetdesk.schemas.organization import OrganizationUpdateRequest
from fleetdesk.services.organization_service import organization_service
from fleetdesk.services.permissions import Actor

router = APIRouter(prefix="/organizations")


@router.get("/me", summary="Get my organization")
def get_mine(db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)):
    return success_response("Organization retrieved", organization_service.get_mine(db, actor))


@router.put("/me", summary="Update organization details (Admin)")
def update_mine(
    body:  OrganizationUpdateRequest,
    db:    Session = Depends(get_db),
    actor: Actor   = Depends(get_admin),
):
    return success_response("Organization updated successfully", organization_service.update_mine(db, body, actor))


@router.get("/stats", summary="Vehicle, booking and member counts (Manager)")
def get_stats(db: Session = Depends(get_db), actor: Actor = Depends(get_manager)):
    return success_response("Organization stats retrieved", organization_service.get_stats(db, actor))
