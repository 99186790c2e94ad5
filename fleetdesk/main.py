import logging

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from fleetdesk.api.v1 import bookings, organizations, profiles, vehicles
from fleetdesk.config import settings
from fleetdesk.database import check_db_connection
from fleetdesk.middleware.error_handler import (
    app_exception_handler,
    database_error_handler,
    generic_exception_handler,
    integrity_error_handler,
    validation_exception_handler,
)
from fleetdesk.utils.exceptions import AppException

logging.basicConfig(
    level=logging.DEBUG if settings.APP_DEBUG else logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"

ROUTERS = (
    (bookings.router,      "Bookings"),
    (vehicles.router,      "Vehicles"),
    (profiles.router,      "Profiles"),
    (organizations.router, "Organizations"),
)


def create_app() -> FastAPI:
    docs = not settings.is_production
    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Fleet vehicle booking API: reservations, approvals and conflict detection",
        docs_url="/docs" if docs else None,
        redoc_url="/redoc" if docs else None,
        openapi_url="/openapi.json" if docs else None,
    )

    # ─── CORS ─────────────────────────────────────────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ─── Exception Handlers ───────────────────────────────────────────────────
    # Most specific first; Exception is the catch-all 500
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    # ─── Routers ──────────────────────────────────────────────────────────────
    for router, tag in ROUTERS:
        app.include_router(router, prefix=API_PREFIX, tags=[tag])

    @app.on_event("startup")
    def on_startup():
        if check_db_connection():
            logger.info(f"{settings.APP_NAME} {settings.APP_VERSION} started ({settings.APP_ENV})")
        else:
            logger.error("Database unreachable at startup")

    @app.get("/health", tags=["Health"])
    def health():
        db_ok = check_db_connection()
        return JSONResponse(
            status_code=200 if db_ok else 503,
            content={
                "status":   "ok" if db_ok else "degraded",
                "database": "up" if db_ok else "down",
                "app":      settings.APP_NAME,
                "version":  settings.APP_VERSION,
            },
        )

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("fleetdesk.main:app", host=settings.APP_HOST, port=settings.APP_PORT,
                reload=settings.is_development)
