"""Patient-related API routes.

Signup is multipart (form fields plus an optional ``profileImage`` file).
Email is trimmed and lower-cased on signup and login.
"""

from typing import List, Optional

from fastapi import APIRouter, Body, Depends, File, Form, UploadFile
from fastapi.concurrency import run_in_threadpool

from clinic.api.deps import get_store, get_upload_sink
from clinic.core.errors import AuthError, ClinicError, ConflictError, StoreError, ValidationError
from clinic.models.patient import (
    Patient,
    PatientIn,
    PatientLogin,
    normalize_email,
    split_illness_history,
)
from clinic.models.prescription import Prescription
from clinic.services.file_sink import LocalFileSink, unique_name
from clinic.services.logger import log_debug, log_error
from clinic.services.record_store import RecordStore

router = APIRouter(tags=["patients"])


def _parse_age(raw: Optional[str]) -> Optional[int]:
    if raw is None or raw.strip() == "":
        return None
    try:
        return int(raw.strip())
    except ValueError:
        raise ValidationError("age must be an integer") from None


@router.post("/patient/signup", response_model=Patient)
async def patient_signup(
    name: Optional[str] = Form(None),
    age: Optional[str] = Form(None),
    email: Optional[str] = Form(None),
    phone: Optional[str] = Form(None),
    surgeryHistory: Optional[str] = Form(None),
    illnessHistory: Optional[str] = Form(None),
    profileImage: Optional[UploadFile] = File(None),
    store: RecordStore = Depends(get_store),
    uploads: LocalFileSink = Depends(get_upload_sink),
):
    email = normalize_email(email)

    if not name or not email or not phone:
        raise ValidationError("Missing required fields")

    parsed_age = _parse_age(age)

    try:
        if await run_in_threadpool(store.find_patient_by_email_or_phone, email, phone):
            raise ConflictError("Email or phone already registered")

        # Image is stored only once the request is known to be acceptable
        image_path = ""
        if profileImage is not None and profileImage.filename:
            data = await profileImage.read()
            image_path = await run_in_threadpool(
                uploads.save, data, unique_name(profileImage.filename)
            )

        patient = await run_in_threadpool(
            store.create_patient,
            PatientIn(
                name=name,
                age=parsed_age,
                email=email,
                phone=phone,
                surgeryHistory=surgeryHistory,
                illnessHistory=split_illness_history(illnessHistory),
                profileImage=image_path,
            )
        )
    except ClinicError:
        raise
    except Exception as e:
        log_error("patient_signup", e)
        raise StoreError(str(e)) from e

    log_debug("patient_signup", {"id": patient.id, "email": patient.email})
    return patient


@router.post("/patient/login", response_model=Patient)
async def patient_login(
    payload: PatientLogin = Body(...),
    store: RecordStore = Depends(get_store),
):
    email = normalize_email(payload.email)

    try:
        patient = await run_in_threadpool(store.find_patient_by_credentials, email, payload.phone)
    except Exception as e:
        log_error("patient_login", e)
        raise StoreError(str(e)) from e

    if not patient:
        log_debug("patient_login_failed", {"email": email})
        raise AuthError("Invalid credentials")

    return patient


@router.get("/patient/prescriptions/{patientId}", response_model=List[Prescription])
async def patient_prescriptions(
    patientId: str,
    store: RecordStore = Depends(get_store),
):
    """Prescriptions for every consultation carrying this ``patientId``.

    Consultation creation never fills ``patientId`` from a patient record; it
    is only present when the client sent it, so this is often empty.
    """
    try:
        consultations = await run_in_threadpool(store.find_consultations_by_patient_id, patientId)
        ids = [c.id for c in consultations]
        if not ids:
            return []
        return await run_in_threadpool(store.find_prescriptions_by_consultation_ids, ids)
    except Exception as e:
        log_error("patient_prescriptions", e)
        raise StoreError(str(e)) from e
