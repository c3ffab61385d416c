"""Prescription generation.

Each call renders a fresh PDF under a new file name and then upserts the
single prescription row for the consultation. Earlier PDFs stay on disk.
"""
from fastapi import APIRouter, Body, Depends
from fastapi.concurrency import run_in_threadpool

from clinic.api.deps import get_renderer, get_store
from clinic.core.errors import ClinicError, NotFoundError, StoreError, ValidationError
from clinic.models.consultation import ConsultationId
from clinic.models.prescription import PrescriptionCreated, PrescriptionIn
from clinic.services.logger import log_debug, log_error
from clinic.services.prescription_pdf import PrescriptionRenderer
from clinic.services.record_store import RecordStore

router = APIRouter(prefix="/prescription", tags=["prescriptions"])


@router.post("/{consultationId}", response_model=PrescriptionCreated)
async def create_prescription(
    consultationId: str,
    payload: PrescriptionIn = Body(...),
    store: RecordStore = Depends(get_store),
    renderer: PrescriptionRenderer = Depends(get_renderer),
):
    care = payload.care
    if not care or care.strip() == "":
        raise ValidationError("Care is required")

    consultation_id = ConsultationId(consultationId)

    try:
        # 1. Fetch consultation and doctor
        consultation = await run_in_threadpool(store.find_consultation_by_id, consultation_id)
        if not consultation:
            raise NotFoundError("Consultation not found")

        doctor = await run_in_threadpool(store.find_doctor_by_id, consultation.doctorId)
        doctor_name = (doctor.name if doctor else None) or "Doctor"

        # 2. Render and save the PDF
        rendered = await run_in_threadpool(
            renderer.publish, consultation_id, doctor_name, care, payload.medicine
        )

        # 3. One row per consultation
        await run_in_threadpool(
            store.upsert_prescription,
            consultation_id,
            care=care,
            medicine=payload.medicine or "",
            pdf_path=rendered.path,
        )
    except ClinicError:
        raise
    except Exception as e:
        log_error("create_prescription", e)
        raise StoreError(str(e)) from e

    log_debug("prescription_generated", {"consultationId": consultation_id, "pdfUrl": rendered.path})
    return PrescriptionCreated(pdfUrl=rendered.path)
