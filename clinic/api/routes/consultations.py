"""Consultation intake and the doctor's consultation list."""
from typing import List

from fastapi import APIRouter, Body, Depends
from fastapi.concurrency import run_in_threadpool

from clinic.api.deps import get_store
from clinic.core.errors import StoreError
from clinic.models.consultation import Consultation, ConsultationIn
from clinic.models.doctor import DoctorId
from clinic.services.logger import log_debug, log_error
from clinic.services.record_store import RecordStore

router = APIRouter(tags=["consultations"])


@router.post("/consultation", response_model=Consultation)
async def create_consultation(
    payload: ConsultationIn = Body(...),
    store: RecordStore = Depends(get_store),
):
    # doctorId is stored as sent; it is only resolved when a prescription is made
    try:
        consultation = await run_in_threadpool(store.create_consultation, payload)
    except Exception as e:
        log_error("create_consultation", e)
        raise StoreError(str(e)) from e

    log_debug("consultation_created", {"id": consultation.id, "doctorId": consultation.doctorId})
    return consultation


@router.get("/doctor/consultations/{doctorId}", response_model=List[Consultation])
async def doctor_consultations(
    doctorId: str,
    store: RecordStore = Depends(get_store),
):
    try:
        return await run_in_threadpool(store.find_consultations_by_doctor_id, DoctorId(doctorId))
    except Exception as e:
        log_error("doctor_consultations", e)
        raise StoreError(str(e)) from e
