"""In-process record store.

Same contract as ``FirestoreRecordStore``: unique email/phone per entity
kind, one prescription per consultation, insertion-ordered listings. A
single lock makes the unique-key check and the prescription upsert atomic.
"""
from __future__ import annotations

import threading
import uuid
from typing import Dict, List

from clinic.core.errors import ConflictError
from clinic.models.consultation import Consultation, ConsultationIn
from clinic.models.doctor import Doctor, DoctorIn
from clinic.models.patient import Patient, PatientIn
from clinic.models.prescription import Prescription
from clinic.services.record_store import RecordStore, unique_keys, utcnow


def _new_id() -> str:
    return uuid.uuid4().hex[:24]


class MemoryRecordStore(RecordStore):
    def __init__(self):
        self._lock = threading.RLock()
        self.doctors: Dict[str, Doctor] = {}
        self.patients: Dict[str, Patient] = {}
        self.consultations: Dict[str, Consultation] = {}
        # keyed by consultationId
        self.prescriptions: Dict[str, Prescription] = {}
        self._unique: Dict[str, str] = {}

    def _reserve(self, kind, email, phone, owner_id):
        keys = unique_keys(kind, email, phone)
        if any(k in self._unique for k in keys):
            raise ConflictError(f"{kind.capitalize()} email or phone already registered")
        for k in keys:
            self._unique[k] = owner_id

    def create_doctor(self, fields: DoctorIn) -> Doctor:
        with self._lock:
            doctor = Doctor(id=_new_id(), **fields.model_dump())
            self._reserve("doctor", doctor.email, doctor.phone, doctor.id)
            self.doctors[doctor.id] = doctor
            return doctor

    def find_doctor_by_email(self, email):
        return next((d for d in self.doctors.values() if d.email == email), None)

    def find_doctor_by_id(self, doctor_id):
        return self.doctors.get(doctor_id) if doctor_id else None

    def list_doctors(self) -> List[Doctor]:
        return list(self.doctors.values())

    def create_patient(self, fields: PatientIn) -> Patient:
        with self._lock:
            patient = Patient(id=_new_id(), **fields.model_dump())
            self._reserve("patient", patient.email, patient.phone, patient.id)
            self.patients[patient.id] = patient
            return patient

    def find_patient_by_email_or_phone(self, email, phone):
        return next(
            (p for p in self.patients.values() if p.email == email or p.phone == phone),
            None,
        )

    def find_patient_by_credentials(self, email, phone):
        return next(
            (p for p in self.patients.values() if p.email == email and p.phone == phone),
            None,
        )

    def create_consultation(self, fields: ConsultationIn) -> Consultation:
        now = utcnow()
        consultation = Consultation(
            id=_new_id(), createdAt=now, updatedAt=now, **fields.model_dump()
        )
        with self._lock:
            self.consultations[consultation.id] = consultation
        return consultation

    def find_consultations_by_doctor_id(self, doctor_id):
        return [c for c in self.consultations.values() if c.doctorId == doctor_id]

    def find_consultations_by_patient_id(self, patient_id):
        return [c for c in self.consultations.values() if c.patientId == patient_id]

    def find_consultation_by_id(self, consultation_id):
        return self.consultations.get(consultation_id)

    def upsert_prescription(self, consultation_id, care, medicine, pdf_path):
        with self._lock:
            now = utcnow()
            existing = self.prescriptions.get(consultation_id)
            prescription = Prescription(
                id=existing.id if existing else _new_id(),
                consultationId=consultation_id,
                care=care,
                medicine=medicine or "",
                pdfPath=pdf_path,
                createdAt=existing.createdAt if existing else now,
                updatedAt=now,
            )
            self.prescriptions[consultation_id] = prescription
            return prescription

    def find_prescriptions_by_consultation_ids(self, ids):
        wanted = set(ids)
        return [p for cid, p in self.prescriptions.items() if cid in wanted]
