import logging
import traceback

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from fleetdesk.schemas.common import error_body, error_response
from fleetdesk.utils.exceptions import AppException, ErrorCode

logger = logging.getLogger(__name__)


def _where(request: Request) -> str:
    return f"{request.method} {request.url.path}"


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Every AppException already carries its envelope in ``detail``."""
    if exc.status_code >= 500:
        logger.error(f"{exc.error_code} on {_where(request)}: {exc.message}")
    elif exc.status_code in (status.HTTP_403_FORBIDDEN, status.HTTP_409_CONFLICT):
        logger.warning(f"{exc.error_code} on {_where(request)}: {exc.message}")

    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(exc.message, exc.detail["error"]),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Request-shape errors from pydantic, one entry per offending field."""
    details = [
        {
            # loc looks like ("body", "start_time") or ("query", "limit")
            "field":   ".".join(str(part) for part in err.get("loc", ()) if part != "body") or "unknown",
            "message": err.get("msg", "Invalid value"),
        }
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=error_response("Validation error. Please check your input.",
                               error_body(ErrorCode.VALIDATION_ERROR, details)),
    )


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    """Unique and foreign-key violations the services did not anticipate."""
    logger.warning(f"IntegrityError on {_where(request)}: {exc.orig}")
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content=error_response("A record with this data already exists.",
                               error_body(ErrorCode.DUPLICATE_ENTRY)),
    )


async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Database failures outside the booking store answer 503 like the store does."""
    logger.error(f"Database error on {_where(request)}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content=error_response("Database is unavailable, please try again later",
                               error_body(ErrorCode.STORE_UNAVAILABLE)),
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled exception on {_where(request)}\n{traceback.format_exc()}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_response("An unexpected error occurred. Please try again later.",
                               error_body(ErrorCode.INTERNAL_SERVER_ERROR)),
    )
