"""
Booking status transitions and who may trigger them.

    pending  ──approve──▶ approved ──complete──▶ completed
       │  └──reject───▶ rejected        │
       └──cancel──▶ cancelled ◀──cancel──┘

rejected, cancelled and completed are terminal. Every guard runs before the
booking is touched, so a refused transition leaves it unchanged.
"""

import enum
import logging
from datetime import datetime

from fleetdesk.models.booking import Booking, BookingStatus
from fleetdesk.services.intervals import to_utc, utcnow
from fleetdesk.services.permissions import Actor, require_manager, require_same_organization
from fleetdesk.utils.exceptions import ForbiddenException, InvalidStatusTransitionException

logger = logging.getLogger(__name__)


class BookingAction(str, enum.Enum):
    APPROVE  = "approve"
    REJECT   = "reject"
    CANCEL   = "cancel"
    COMPLETE = "complete"


TRANSITIONS: dict[BookingStatus, dict[BookingAction, BookingStatus]] = {
    BookingStatus.PENDING: {
        BookingAction.APPROVE: BookingStatus.APPROVED,
        BookingAction.REJECT:  BookingStatus.REJECTED,
        BookingAction.CANCEL:  BookingStatus.CANCELLED,
    },
    BookingStatus.APPROVED: {
        BookingAction.CANCEL:   BookingStatus.CANCELLED,
        BookingAction.COMPLETE: BookingStatus.COMPLETED,
    },
    BookingStatus.REJECTED:  {},
    BookingStatus.CANCELLED: {},
    BookingStatus.COMPLETED: {},
}


def next_status(current: BookingStatus, action: BookingAction) -> BookingStatus:
    """Target status for ``action`` from ``current``; raises if the move is illegal."""
    target = TRANSITIONS[current].get(action)
    if target is None:
        if not TRANSITIONS[current]:
            raise InvalidStatusTransitionException(f"Booking is already {current.value}")
        raise InvalidStatusTransitionException(
            f"Cannot {action.value} a booking that is {current.value}"
        )
    return target


class BookingStateMachine:

    # ─── Guards ───────────────────────────────────────────────────────────────
    def ensure_allowed(
        self, action: BookingAction, booking: Booking,
        actor: Actor | None, now: datetime | None = None,
    ) -> BookingStatus:
        """
        Run every guard for ``action`` without touching the booking.

        Authorization is checked before state, so a caller from another
        organization learns nothing about the booking's status.
        Returns the status the booking would move to.
        """
        now = to_utc(now) if now else utcnow()

        if action in (BookingAction.APPROVE, BookingAction.REJECT):
            self._require_manager_of(booking, actor, action.value)
            if booking.status != BookingStatus.PENDING:
                raise InvalidStatusTransitionException(
                    f"Only pending bookings can be {'approved' if action == BookingAction.APPROVE else 'rejected'}"
                )
            return next_status(booking.status, action)

        if action == BookingAction.CANCEL:
            # Owner or a manager, and only before the booking starts
            require_same_organization(actor, booking.vehicle.organization_id,
                                      "Access denied - booking not in your organization")
            if not actor.can_manage and booking.user_id != actor.user_id:
                raise ForbiddenException("Access denied - you can only cancel your own bookings")
            target = next_status(booking.status, action)
            if now >= booking.start_time:
                raise InvalidStatusTransitionException(
                    "Booking has already started and can no longer be cancelled"
                )
            return target

        # COMPLETE: a manager, or the system when actor is None
        if actor is not None:
            self._require_manager_of(booking, actor, action.value)
        target = next_status(booking.status, action)
        if now < booking.end_time:
            raise InvalidStatusTransitionException("Booking has not finished yet")
        return target

    # ─── Transitions ──────────────────────────────────────────────────────────
    def approve(self, booking: Booking, actor: Actor, now: datetime | None = None) -> Booking:
        return self._transition(BookingAction.APPROVE, booking, actor, now)

    def reject(
        self, booking: Booking, actor: Actor,
        reason: str | None = None, now: datetime | None = None,
    ) -> Booking:
        self._transition(BookingAction.REJECT, booking, actor, now)
        booking.rejection_reason = reason.strip() if reason and reason.strip() else None
        return booking

    def cancel(self, booking: Booking, actor: Actor, now: datetime | None = None) -> Booking:
        return self._transition(BookingAction.CANCEL, booking, actor, now)

    def complete(self, booking: Booking, actor: Actor | None, now: datetime | None = None) -> Booking:
        return self._transition(BookingAction.COMPLETE, booking, actor, now)

    # ─── Internals ────────────────────────────────────────────────────────────
    def _require_manager_of(self, booking: Booking, actor: Actor, verb: str) -> None:
        require_same_organization(actor, booking.vehicle.organization_id,
                                  "Access denied - booking not in your organization")
        require_manager(actor, f"Access denied - insufficient permissions to {verb} bookings")

    def _transition(
        self, action: BookingAction, booking: Booking,
        actor: Actor | None, now: datetime | None,
    ) -> Booking:
        now = to_utc(now) if now else utcnow()
        target = self.ensure_allowed(action, booking, actor, now)

        previous = booking.status
        booking.status            = target
        booking.status_changed_by = actor.user_id if actor else None
        booking.status_changed_at = now
        logger.info(f"Booking {booking.id}: {previous.value} -> {target.value} "
                    f"by {actor.user_id if actor else 'system'}")
        return booking


booking_state_machine = BookingStateMachine()
