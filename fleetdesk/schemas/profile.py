from pydantic import BaseModel, field_validator
from typing import Optional
from fleetdesk.models.profile import UserRole


class ProfileUpdateRequest(BaseModel):
    first_name: Optional[str] = None
    last_name:  Optional[str] = None
    phone:      Optional[str] = None

    model_config = {"extra": "forbid"}

    @field_validator("first_name")
    @classmethod
    def check_first_name(cls, v):
        if v is not None and not v.strip(): raise ValueError("First name cannot be empty")
        return v.strip() if v is not None else None


class ProfileAdminUpdateRequest(BaseModel):
    role:      Optional[UserRole] = None
    is_active: Optional[bool] = None
