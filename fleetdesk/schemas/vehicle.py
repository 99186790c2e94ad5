from pydantic import BaseModel, Field, field_validator
from typing import Optional
from fleetdesk.models.vehicle import VehicleStatus


class VehicleCreateRequest(BaseModel):
    make:            str
    model:           str
    year:            int
    license_plate:   str
    seats:           int = Field(5, gt=0, le=50)
    parking_spot:    Optional[str] = None
    current_mileage: Optional[int] = None

    @field_validator("year")
    @classmethod
    def check_year(cls, v):
        if not (1900 <= v <= 2100): raise ValueError("Year must be between 1900 and 2100")
        return v

    @field_validator("current_mileage")
    @classmethod
    def check_mileage(cls, v):
        if v is not None and v < 0: raise ValueError("Mileage cannot be negative")
        return v

    @field_validator("license_plate")
    @classmethod
    def check_plate(cls, v):
        if not v.strip(): raise ValueError("License plate cannot be empty")
        return v.strip().upper()

    @field_validator("make", "model")
    @classmethod
    def check_text(cls, v):
        if not v.strip(): raise ValueError("Field cannot be empty")
        return v.strip()


class VehicleStatusRequest(BaseModel):
    status: VehicleStatus
    reason: Optional[str] = None


class VehicleUpdateRequest(BaseModel):
    make:            Optional[str] = None
    model:           Optional[str] = None
    year:            Optional[int] = None
    license_plate:   Optional[str] = None
    seats:           Optional[int] = Field(None, gt=0, le=50)
    parking_spot:    Optional[str] = None
    current_mileage: Optional[int] = None

    model_config = {"extra": "forbid"}

    @field_validator("year")
    @classmethod
    def check_year(cls, v):
        if v is not None and not (1900 <= v <= 2100): raise ValueError("Year must be between 1900 and 2100")
        return v

    @field_validator("current_mileage")
    @classmethod
    def check_mileage(cls, v):
        if v is not None and v < 0: raise ValueError("Mileage cannot be negative")
        return v

    @field_validator("license_plate")
    @classmethod
    def check_plate(cls, v):
        if v is None: return v
        if not v.strip(): raise ValueError("License plate cannot be empty")
        return v.strip().upper()

    @field_validator("make", "model")
    @classmethod
    def check_text(cls, v):
        if v is None: return v
        if not v.strip(): raise ValueError("Field cannot be empty")
        return v.strip()
