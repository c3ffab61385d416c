"""Pydantic models for prescriptions (one per consultation)."""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from clinic.models.consultation import ConsultationId


class PrescriptionIn(BaseModel):
    care: Optional[str] = None
    medicine: Optional[str] = None


class Prescription(BaseModel):
    id: str
    consultationId: ConsultationId
    care: str
    medicine: str = ""
    pdfPath: Optional[str] = None
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None


class PrescriptionCreated(BaseModel):
    success: bool = True
    message: str = "Prescription generated successfully"
    pdfUrl: str
