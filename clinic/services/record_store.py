"""Record store for doctors, patients, consultations and prescriptions.

``RecordStore`` is the interface the API layer depends on.
``FirestoreRecordStore`` is the production backend; see ``memory_store`` for
the in-process one used by tests and credential-less local runs.

Firestore has no unique indexes, so uniqueness of doctor/patient email and
phone is enforced with reserved documents in ``unique_keys`` that are checked
and written inside the same transaction as the entity itself.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, List, Optional
from urllib.parse import quote

from firebase_admin import firestore
from google.cloud.firestore import FieldFilter, Or

from clinic.core.errors import ConflictError
from clinic.models.consultation import Consultation, ConsultationId, ConsultationIn
from clinic.models.doctor import Doctor, DoctorId, DoctorIn
from clinic.models.patient import Patient, PatientIn
from clinic.models.prescription import Prescription

# Firestore caps "in" filters at 30 values
IN_QUERY_LIMIT = 30


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def unique_keys(kind: str, email: Optional[str], phone: Optional[str]) -> List[str]:
    """Reserved key ids for the non-empty unique fields of an entity."""
    keys = []
    if email:
        keys.append(f"{kind}_email:{quote(email, safe='')}")
    if phone:
        keys.append(f"{kind}_phone:{quote(phone, safe='')}")
    return keys


def is_valid_document_id(doc_id: str) -> bool:
    return bool(doc_id) and "/" not in doc_id and doc_id not in (".", "..")


class RecordStore:
    """Operations the API layer needs from persistent storage."""

    def create_doctor(self, fields: DoctorIn) -> Doctor:
        raise NotImplementedError

    def find_doctor_by_email(self, email: Optional[str]) -> Optional[Doctor]:
        raise NotImplementedError

    def find_doctor_by_id(self, doctor_id: Optional[DoctorId]) -> Optional[Doctor]:
        raise NotImplementedError

    def list_doctors(self) -> List[Doctor]:
        raise NotImplementedError

    def create_patient(self, fields: PatientIn) -> Patient:
        raise NotImplementedError

    def find_patient_by_email_or_phone(self, email: str, phone: str) -> Optional[Patient]:
        raise NotImplementedError

    def find_patient_by_credentials(self, email: str, phone: Optional[str]) -> Optional[Patient]:
        raise NotImplementedError

    def create_consultation(self, fields: ConsultationIn) -> Consultation:
        raise NotImplementedError

    def find_consultations_by_doctor_id(self, doctor_id: DoctorId) -> List[Consultation]:
        raise NotImplementedError

    def find_consultations_by_patient_id(self, patient_id: str) -> List[Consultation]:
        raise NotImplementedError

    def find_consultation_by_id(self, consultation_id: ConsultationId) -> Optional[Consultation]:
        raise NotImplementedError

    def upsert_prescription(
        self, consultation_id: ConsultationId, care: str, medicine: str, pdf_path: str
    ) -> Prescription:
        raise NotImplementedError

    def find_prescriptions_by_consultation_ids(self, ids: Iterable[ConsultationId]) -> List[Prescription]:
        raise NotImplementedError


class FirestoreRecordStore(RecordStore):
    def __init__(self, db):
        self.db = db

    # -------------------------
    # Helpers
    # -------------------------
    def _create_unique(self, collection: str, kind: str, data: dict, email, phone) -> str:
        """Insert ``data`` into ``collection`` and reserve its unique keys atomically."""
        doc_ref = self.db.collection(collection).document()
        key_refs = [
            self.db.collection("unique_keys").document(key)
            for key in unique_keys(kind, email, phone)
        ]

        @firestore.transactional
        def _create(transaction):
            for ref in key_refs:
                if ref.get(transaction=transaction).exists:
                    raise ConflictError(f"{kind.capitalize()} email or phone already registered")
            transaction.set(doc_ref, data)
            for ref in key_refs:
                transaction.set(ref, {"owner": doc_ref.id, "collection": collection})

        _create(self.db.transaction())
        return doc_ref.id

    def _first(self, query):
        docs = list(query.limit(1).stream())
        return docs[0] if docs else None

    # -------------------------
    # Doctors
    # -------------------------
    def create_doctor(self, fields: DoctorIn) -> Doctor:
        data = {**fields.model_dump(), "createdAt": utcnow()}
        doc_id = self._create_unique("doctors", "doctor", data, fields.email, fields.phone)
        return Doctor(id=doc_id, **fields.model_dump())

    def find_doctor_by_email(self, email):
        doc = self._first(
            self.db.collection("doctors").where(filter=FieldFilter("email", "==", email))
        )
        return Doctor(id=doc.id, **(doc.to_dict() or {})) if doc else None

    def find_doctor_by_id(self, doctor_id):
        if not doctor_id or not is_valid_document_id(doctor_id):
            return None
        doc = self.db.collection("doctors").document(doctor_id).get()
        return Doctor(id=doc.id, **(doc.to_dict() or {})) if doc.exists else None

    def list_doctors(self):
        docs = self.db.collection("doctors").order_by("createdAt").stream()
        return [Doctor(id=d.id, **(d.to_dict() or {})) for d in docs]

    # -------------------------
    # Patients
    # -------------------------
    def create_patient(self, fields: PatientIn) -> Patient:
        data = {**fields.model_dump(), "createdAt": utcnow()}
        doc_id = self._create_unique("patients", "patient", data, fields.email, fields.phone)
        return Patient(id=doc_id, **fields.model_dump())

    def find_patient_by_email_or_phone(self, email, phone):
        doc = self._first(
            self.db.collection("patients").where(
                filter=Or([
                    FieldFilter("email", "==", email),
                    FieldFilter("phone", "==", phone),
                ])
            )
        )
        return Patient(id=doc.id, **(doc.to_dict() or {})) if doc else None

    def find_patient_by_credentials(self, email, phone):
        doc = self._first(
            self.db.collection("patients")
            .where(filter=FieldFilter("email", "==", email))
            .where(filter=FieldFilter("phone", "==", phone))
        )
        return Patient(id=doc.id, **(doc.to_dict() or {})) if doc else None

    # -------------------------
    # Consultations
    # -------------------------
    def create_consultation(self, fields: ConsultationIn) -> Consultation:
        now = utcnow()
        data = {**fields.model_dump(), "createdAt": now, "updatedAt": now}
        doc_ref = self.db.collection("consultations").document()
        doc_ref.set(data)
        return Consultation(id=doc_ref.id, **data)

    def _consultations_where(self, field, value):
        # Sorted here; order_by on another field would need a composite index
        docs = (
            self.db.collection("consultations")
            .where(filter=FieldFilter(field, "==", value))
            .stream()
        )
        items = [Consultation(id=d.id, **(d.to_dict() or {})) for d in docs]
        return sorted(items, key=lambda c: c.createdAt or datetime.min.replace(tzinfo=timezone.utc))

    def find_consultations_by_doctor_id(self, doctor_id):
        return self._consultations_where("doctorId", doctor_id)

    def find_consultations_by_patient_id(self, patient_id):
        return self._consultations_where("patientId", patient_id)

    def find_consultation_by_id(self, consultation_id):
        if not is_valid_document_id(consultation_id):
            return None
        doc = self.db.collection("consultations").document(consultation_id).get()
        if not doc.exists:
            return None
        return Consultation(id=doc.id, **(doc.to_dict() or {}))

    # -------------------------
    # Prescriptions
    # -------------------------
    def upsert_prescription(self, consultation_id, care, medicine, pdf_path):
        # The consultation id is the document id, so one row per consultation
        ref = self.db.collection("prescriptions").document(consultation_id)

        @firestore.transactional
        def _upsert(transaction):
            snap = ref.get(transaction=transaction)
            now = utcnow()
            existing = (snap.to_dict() or {}) if snap.exists else {}
            data = {
                **existing,
                "consultationId": consultation_id,
                "care": care,
                "medicine": medicine or "",
                "pdfPath": pdf_path,
                "createdAt": existing.get("createdAt") or now,
                "updatedAt": now,
            }
            transaction.set(ref, data)
            return data

        data = _upsert(self.db.transaction())
        return Prescription(id=ref.id, **data)

    def find_prescriptions_by_consultation_ids(self, ids):
        ids = [i for i in dict.fromkeys(ids) if i]
        out = []
        for start in range(0, len(ids), IN_QUERY_LIMIT):
            chunk = ids[start:start + IN_QUERY_LIMIT]
            docs = (
                self.db.collection("prescriptions")
                .where(filter=FieldFilter("consultationId", "in", chunk))
                .stream()
            )
            out.extend(Prescription(id=d.id, **(d.to_dict() or {})) for d in docs)
        return out
