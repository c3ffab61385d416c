from datetime import datetime
from typing import NewType, Optional

from pydantic import BaseModel

from clinic.models.doctor import DoctorId

ConsultationId = NewType("ConsultationId", str)


class ConsultationIn(BaseModel):
    doctorId: Optional[DoctorId] = None
    patientName: Optional[str] = None

    # Only set when the client sends it; nothing links it to a Patient record
    patientId: Optional[str] = None

    illnessHistory: Optional[str] = None
    recentSurgery: Optional[str] = None

    diabeticStatus: Optional[str] = None
    allergies: Optional[str] = None
    others: Optional[str] = None

    transactionId: Optional[str] = None


class Consultation(ConsultationIn):
    id: str
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None
