from pydantic import BaseModel, field_validator
from typing import Optional


class OrganizationUpdateRequest(BaseModel):
    """Contact details only; status and subscription plan are managed elsewhere."""
    name:  Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None

    model_config = {"extra": "forbid"}

    @field_validator("name")
    @classmethod
    def check_name(cls, v):
        if v is not None and not v.strip(): raise ValueError("Organization name cannot be empty")
        return v.strip() if v is not None else None

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        if v is not None and "@" not in v: raise ValueError("Invalid email address")
        return v.strip().lower() if v is not None else None
