"""Doctor signup, login and listing.

Doctor flows take the email exactly as sent; only patient flows normalize it.
Store calls are synchronous and run in the threadpool.
"""
from typing import List, Optional

from fastapi import APIRouter, Body, Depends
from fastapi.concurrency import run_in_threadpool

from clinic.api.deps import get_store
from clinic.core.errors import StoreError
from clinic.models.doctor import Doctor, DoctorIn, DoctorLogin
from clinic.services.logger import log_debug, log_error
from clinic.services.record_store import RecordStore

router = APIRouter(tags=["doctors"])


@router.post("/doctor/signup", response_model=Doctor)
async def doctor_signup(
    payload: DoctorIn = Body(...),
    store: RecordStore = Depends(get_store),
):
    try:
        doctor = await run_in_threadpool(store.create_doctor, payload)
    except Exception as e:
        # Duplicate email/phone is reported as a plain store failure here
        log_error("doctor_signup", e)
        raise StoreError(str(e)) from e

    log_debug("doctor_signup", {"id": doctor.id, "email": doctor.email})
    return doctor


@router.post("/doctor/login", response_model=Optional[Doctor])
async def doctor_login(
    payload: DoctorLogin = Body(...),
    store: RecordStore = Depends(get_store),
):
    """No credential check: any doctor with this email is returned, else null."""
    try:
        return await run_in_threadpool(store.find_doctor_by_email, payload.email)
    except Exception as e:
        log_error("doctor_login", e)
        raise StoreError(str(e)) from e


@router.get("/doctors", response_model=List[Doctor])
async def list_doctors(store: RecordStore = Depends(get_store)):
    try:
        return await run_in_threadpool(store.list_doctors)
    except Exception as e:
        log_error("list_doctors", e)
        raise StoreError(str(e)) from e
