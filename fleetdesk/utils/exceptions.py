from fastapi import HTTPException, status

from fleetdesk.schemas.common import error_body


# ═══════════════════════════════════════════════════════════════════════════════
# ERROR CODES: machine-readable, stable across releases
# ═══════════════════════════════════════════════════════════════════════════════
class ErrorCode:
    VALIDATION_ERROR          = "VALIDATION_ERROR"
    INVALID_DATE_RANGE        = "INVALID_DATE_RANGE"
    UNAUTHORIZED              = "UNAUTHORIZED"
    TOKEN_EXPIRED             = "TOKEN_EXPIRED"
    FORBIDDEN                 = "FORBIDDEN"
    ACCOUNT_INACTIVE          = "ACCOUNT_INACTIVE"
    NOT_FOUND                 = "NOT_FOUND"
    DUPLICATE_ENTRY           = "DUPLICATE_ENTRY"
    BOOKING_CONFLICT          = "BOOKING_CONFLICT"
    INVALID_STATUS_TRANSITION = "INVALID_STATUS_TRANSITION"
    VEHICLE_UNAVAILABLE       = "VEHICLE_UNAVAILABLE"
    VEHICLE_IN_USE            = "VEHICLE_IN_USE"
    STORE_UNAVAILABLE         = "STORE_UNAVAILABLE"
    INTERNAL_SERVER_ERROR     = "INTERNAL_SERVER_ERROR"


# ═══════════════════════════════════════════════════════════════════════════════
# BASE EXCEPTION
# ═══════════════════════════════════════════════════════════════════════════════
class AppException(HTTPException):
    """
    Base exception for all application-level errors.
    Carries a machine-readable error_code for frontend handling.
    """
    def __init__(
        self,
        status_code: int,
        message: str,
        error_code: str,
        details: list | None = None,
        field: str | None = None,
    ):
        self.message = message
        self.error_code = error_code
        super().__init__(status_code=status_code, detail={
            "message": message,
            "error":   error_body(error_code, details, field),
        })


# ═══════════════════════════════════════════════════════════════════════════════
# CATEGORIES
# Validation → 400, Authorization → 401/403, Conflict → 409, Store → 503
# ═══════════════════════════════════════════════════════════════════════════════

class ValidationException(AppException):
    def __init__(self, message: str, field: str | None = None, error_code: str = ErrorCode.VALIDATION_ERROR):
        super().__init__(status.HTTP_400_BAD_REQUEST, message, error_code, field=field)


class ForbiddenException(AppException):
    def __init__(self, message: str = "You do not have permission to perform this action"):
        super().__init__(status.HTTP_403_FORBIDDEN, message, ErrorCode.FORBIDDEN)


class ConflictException(AppException):
    def __init__(self, message: str, error_code: str, details: list | None = None):
        super().__init__(status.HTTP_409_CONFLICT, message, error_code, details=details)


class StoreUnavailableException(AppException):
    """The database could not be reached or failed unexpectedly. Never means "no rows"."""
    def __init__(self, message: str = "Booking store is unavailable, please try again later"):
        super().__init__(status.HTTP_503_SERVICE_UNAVAILABLE, message, ErrorCode.STORE_UNAVAILABLE)


# ═══════════════════════════════════════════════════════════════════════════════
# CONCRETE EXCEPTIONS
# ═══════════════════════════════════════════════════════════════════════════════

class InvalidDateRangeException(ValidationException):
    def __init__(self, message: str = "End time must be after start time", field: str | None = "end_time"):
        super().__init__(message, field=field, error_code=ErrorCode.INVALID_DATE_RANGE)


class UnauthorizedException(AppException):
    def __init__(self, message: str = "Authentication required"):
        super().__init__(status.HTTP_401_UNAUTHORIZED, message, ErrorCode.UNAUTHORIZED)


class TokenExpiredException(AppException):
    def __init__(self):
        super().__init__(status.HTTP_401_UNAUTHORIZED, "Access token has expired", ErrorCode.TOKEN_EXPIRED)


class AccountInactiveException(AppException):
    def __init__(self):
        super().__init__(
            status.HTTP_403_FORBIDDEN,
            "Your account has been deactivated. Contact your fleet manager.",
            ErrorCode.ACCOUNT_INACTIVE,
        )


class NotFoundException(AppException):
    def __init__(self, resource: str = "Resource"):
        super().__init__(status.HTTP_404_NOT_FOUND, f"{resource} not found", ErrorCode.NOT_FOUND)


class DuplicateEntryException(AppException):
    def __init__(self, message: str = "Record already exists", field: str | None = None):
        super().__init__(status.HTTP_409_CONFLICT, message, ErrorCode.DUPLICATE_ENTRY, field=field)


class BookingConflictException(ConflictException):
    """Raised with every live booking that overlaps the requested interval."""
    def __init__(self, conflicts: list | None = None):
        self.conflicts = list(conflicts or [])
        super().__init__(
            "Vehicle is already booked during this time period",
            ErrorCode.BOOKING_CONFLICT,
            details=[_conflict_detail(b) for b in self.conflicts],
        )


class InvalidStatusTransitionException(ConflictException):
    def __init__(self, message: str):
        super().__init__(message, ErrorCode.INVALID_STATUS_TRANSITION)


class VehicleUnavailableException(ConflictException):
    def __init__(self, vehicle_status: str):
        super().__init__(
            f"Vehicle is not available for booking (status: {vehicle_status})",
            ErrorCode.VEHICLE_UNAVAILABLE,
        )


class VehicleInUseException(ConflictException):
    """Raised when a vehicle with live bookings is taken out of the fleet."""
    def __init__(self, bookings: list):
        self.bookings = list(bookings)
        super().__init__(
            "Vehicle has active bookings. Cancel or reject them first.",
            ErrorCode.VEHICLE_IN_USE,
            details=[_conflict_detail(b) for b in self.bookings],
        )


def _conflict_detail(booking) -> dict:
    return {
        "id":         str(booking.id),
        "status":     booking.status.value,
        "start_time": booking.start_time.isoformat(),
        "end_time":   booking.end_time.isoformat(),
    }
