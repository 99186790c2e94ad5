import uuid
from datetime import datetime
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Optional

from fleetdesk.database import get_db
from fleetdesk.dependencies import get_current_actor, get_manager
from fleetdesk.models.vehicle import VehicleStatus
from fleetdesk.schemas.vehicle import VehicleCreateRequest, VehicleStatusRequest, VehicleUpdateRequest
from fleetdesk.schemas.common import Page, page_params, success_response, paginated_response
from fleetdesk.services.permissions import Actor
from fleetdesk.services.vehicle_service import vehicle_service

router = APIRouter(prefix="/vehicles")


@router.get("", summary="List organization vehicles (paginated)")
def list_vehicles(
    page:           Page                    = Depends(page_params),
    status:         Optional[VehicleStatus] = Query(None),
    available_only: bool                    = Query(False),
    db:             Session                 = Depends(get_db),
    actor:          Actor                   = Depends(get_current_actor),
):
    data, total = vehicle_service.list_vehicles(db, actor, page, status, available_only)
    return paginated_response("Vehicles retrieved successfully", data, total, page)


@router.get("/{vehicle_id}", summary="Get vehicle by ID")
def get_vehicle(
    vehicle_id: uuid.UUID,
    db:         Session = Depends(get_db),
    actor:      Actor   = Depends(get_current_actor),
):
    return success_response("Vehicle retrieved", vehicle_service.get_vehicle(db, vehicle_id, actor))


@router.get("/{vehicle_id}/availability", summary="Check whether a vehicle is free for a time range")
def check_availability(
    vehicle_id: uuid.UUID,
    start_time: datetime = Query(...),
    end_time:   datetime = Query(...),
    db:         Session  = Depends(get_db),
    actor:      Actor    = Depends(get_current_actor),
):
    data = vehicle_service.check_availability(db, vehicle_id, start_time, end_time, actor)
    return success_response("Availability checked", data)


@router.post("", status_code=status.HTTP_201_CREATED, summary="Add vehicle (Manager)")
def create_vehicle(
    body:  VehicleCreateRequest,
    db:    Session = Depends(get_db),
    actor: Actor   = Depends(get_manager),
):
    return success_response("Vehicle created successfully", vehicle_service.create_vehicle(db, body, actor))


@router.put("/{vehicle_id}", summary="Edit vehicle details (Manager)")
def update_vehicle(
    vehicle_id: uuid.UUID,
    body:       VehicleUpdateRequest,
    db:         Session = Depends(get_db),
    actor:      Actor   = Depends(get_manager),
):
    return success_response("Vehicle updated successfully", vehicle_service.update_vehicle(db, vehicle_id, body, actor))


@router.patch("/{vehicle_id}/status", summary="Change vehicle status (Manager)")
def update_status(
    vehicle_id: uuid.UUID,
    body:       VehicleStatusRequest,
    db:         Session = Depends(get_db),
    actor:      Actor   = Depends(get_manager),
):
    return success_response("Vehicle status updated", vehicle_service.update_status(db, vehicle_id, body, actor))
