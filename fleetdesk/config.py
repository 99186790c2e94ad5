from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    # ─── Application ───────────────────────────────────────────────────────────
    APP_NAME: str = "Fleetdesk"
    APP_VERSION: str = "1.0.0"
    APP_ENV:  str = "development"
    APP_DEBUG: bool = True
    APP_HOST:  str = "0.0.0.0"
    APP_PORT:  int = 8000

    # ─── Database ──────────────────────────────────────────────────────────────
    DATABASE_URL:          str
    DATABASE_POOL_SIZE:    int  = 10
    DATABASE_MAX_OVERFLOW: int  = 20
    DATABASE_POOL_TIMEOUT: int  = 30
    DATABASE_ECHO:         bool = False

    # ─── Identity service (Supabase Auth) ──────────────────────────────────────
    # Access tokens are issued by the identity service and only verified here.
    SUPABASE_JWT_SECRET: str
    JWT_ALGORITHM:       str = "HS256"
    JWT_AUDIENCE:        str = "authenticated"
    JWT_LEEWAY_SECONDS:  int = 30      # clock skew tolerated on exp/nbf

    # ─── Bookings ──────────────────────────────────────────────────────────────
    BOOKING_PAGE_LIMIT_MAX: int = 100

    # ─── CORS ──────────────────────────────────────────────────────────────────
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173,http://localhost:8080"

    def get_cors_origins(self) -> List[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def is_production(self) -> bool:
        return self.APP_ENV == "production"

    @property
    def is_development(self) -> bool:
        return self.APP_ENV == "development"

    model_config = {"env_file": ".env", "case_sensitive": True, "extra": "ignore"}


settings = Settings()
