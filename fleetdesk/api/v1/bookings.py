import uuid
from datetime import datetime
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Optional

from fleetdesk.database import get_db
from fleetdesk.dependencies import get_current_actor, get_manager
from fleetdesk.models.booking import BookingStatus
from fleetdesk.schemas.booking import BookingCreateRequest, BookingUpdateRequest, RejectRequest, TimeFilter
from fleetdesk.schemas.common import Page, page_params, success_response, paginated_response
from fleetdesk.services.booking_service import booking_service
from fleetdesk.services.permissions import Actor

router = APIRouter(prefix="/bookings")


@router.get("", summary="List bookings (organization and role scoped)")
def list_bookings(
    filter:     TimeFilter               = Query(TimeFilter.ALL),
    page:       Page                     = Depends(page_params),
    vehicle_id: Optional[uuid.UUID]      = Query(None),
    status:     Optional[BookingStatus]  = Query(None),
    start_date: Optional[datetime]       = Query(None),
    end_date:   Optional[datetime]       = Query(None),
    user_id:    Optional[uuid.UUID]      = Query(None, description="Managers only"),
    db:         Session                  = Depends(get_db),
    actor:      Actor                    = Depends(get_current_actor),
):
    data, total = booking_service.list_bookings(
        db, actor, page, filter, vehicle_id, status, start_date, end_date, user_id,
    )
    return paginated_response("Bookings retrieved successfully", data, total, page)


# Must be declared before /{booking_id}
@router.get("/calendar", summary="Bookings overlapping a calendar window")
def get_calendar(
    start: datetime = Query(...),
    end:   datetime = Query(...),
    db:    Session  = Depends(get_db),
    actor: Actor    = Depends(get_current_actor),
):
    return success_response("Calendar data retrieved", booking_service.get_calendar(db, actor, start, end))


@router.post("/complete-elapsed", summary="Complete every approved booking that has ended (Manager)")
def complete_elapsed(
    db:    Session = Depends(get_db),
    actor: Actor   = Depends(get_manager),
):
    count = booking_service.complete_elapsed(db, actor)
    return success_response(f"{count} booking(s) completed", {"completed": count})


@router.get("/{booking_id}", summary="Get booking detail")
def get_booking(
    booking_id: uuid.UUID,
    db:         Session = Depends(get_db),
    actor:      Actor   = Depends(get_current_actor),
):
    return success_response("Booking retrieved", booking_service.get_booking(db, booking_id, actor))


@router.post("", status_code=status.HTTP_201_CREATED, summary="Create booking")
def create_booking(
    body:  BookingCreateRequest,
    db:    Session = Depends(get_db),
    actor: Actor   = Depends(get_current_actor),
):
    data = booking_service.create_booking(db, body, actor)
    return success_response("Booking created successfully", data)


@router.put("/{booking_id}", summary="Update booking details (no status changes)")
def update_booking(
    booking_id: uuid.UUID,
    body:       BookingUpdateRequest,
    db:         Session = Depends(get_db),
    actor:      Actor   = Depends(get_current_actor),
):
    return success_response("Booking updated successfully",
                            booking_service.update_booking(db, booking_id, body, actor))


@router.delete("/{booking_id}", summary="Cancel booking (before it starts)")
def cancel_booking(
    booking_id: uuid.UUID,
    db:         Session = Depends(get_db),
    actor:      Actor   = Depends(get_current_actor),
):
    return success_response("Booking cancelled successfully",
                            booking_service.cancel_booking(db, booking_id, actor))


@router.post("/{booking_id}/approve", summary="Approve booking (Manager)")
def approve_booking(
    booking_id: uuid.UUID,
    db:         Session = Depends(get_db),
    actor:      Actor   = Depends(get_current_actor),
):
    return success_response("Booking approved successfully",
                            booking_service.approve_booking(db, booking_id, actor))


@router.post("/{booking_id}/reject", summary="Reject booking (Manager)")
def reject_booking(
    booking_id: uuid.UUID,
    body:       RejectRequest = RejectRequest(),
    db:         Session       = Depends(get_db),
    actor:      Actor         = Depends(get_current_actor),
):
    return success_response("Booking rejected successfully",
                            booking_service.reject_booking(db, booking_id, body, actor))


@router.post("/{booking_id}/complete", summary="Complete booking after it has ended (Manager)")
def complete_booking(
    booking_id: uuid.UUID,
    db:         Session = Depends(get_db),
    actor:      Actor   = Depends(get_current_actor),
):
    return success_response("Booking completed",
                            booking_service.complete_booking(db, booking_id, actor))


@router.get("/{booking_id}/history", summary="Get status history (Manager)")
def get_history(
    booking_id: uuid.UUID,
    db:         Session = Depends(get_db),
    actor:      Actor   = Depends(get_manager),
):
    return success_response("Booking history retrieved", booking_service.get_history(db, booking_id, actor))
