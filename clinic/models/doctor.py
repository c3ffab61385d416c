"""Pydantic models for doctors stored in the record store."""
from typing import NewType, Optional

from pydantic import BaseModel, field_validator

DoctorId = NewType("DoctorId", str)


class DoctorIn(BaseModel):
    name: Optional[str] = None
    specialty: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    experience: Optional[int] = None

    @field_validator("email", "phone", mode="before")
    @classmethod
    def coerce_to_str(cls, v):
        # Clients send phone numbers as JSON numbers surprisingly often
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v


class Doctor(DoctorIn):
    id: str


class DoctorLogin(BaseModel):
    email: Optional[str] = None
