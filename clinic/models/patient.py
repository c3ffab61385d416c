"""Pydantic models for patient metadata.

Signup arrives as multipart form data, so the route builds ``PatientIn``
itself instead of letting FastAPI parse a JSON body.
"""
from pydantic import BaseModel, Field, field_validator
from typing import List, Optional


class PatientIn(BaseModel):
    name: str
    age: Optional[int] = None
    email: str
    phone: str
    surgeryHistory: Optional[str] = None
    illnessHistory: List[str] = Field(default_factory=list)
    profileImage: str = ""


class Patient(PatientIn):
    id: str


class PatientLogin(BaseModel):
    email: Optional[str] = None
    phone: Optional[str] = None

    @field_validator("phone", mode="before")
    @classmethod
    def coerce_phone(cls, v):
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v


def normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


def split_illness_history(raw: Optional[str]) -> List[str]:
    """``"asthma, flu"`` -> ``["asthma", "flu"]``; empty input gives ``[]``."""
    if not raw:
        return []
    return [item.strip() for item in raw.split(",")]
