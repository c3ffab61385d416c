"""
API dependencies.

The store, upload sink and prescription renderer are built once by the app
factory (or on startup) and kept on ``app.state``; routes receive them
through these dependencies so tests can swap in other implementations.
"""

from fastapi import Request

from clinic.core.errors import StoreError
from clinic.services.file_sink import LocalFileSink
from clinic.services.prescription_pdf import PrescriptionRenderer
from clinic.services.record_store import RecordStore


def get_store(request: Request) -> RecordStore:
    store = getattr(request.app.state, "store", None)
    if store is None:
        raise StoreError("Record store not initialized")
    return store


def get_upload_sink(request: Request) -> LocalFileSink:
    return request.app.state.upload_sink


def get_renderer(request: Request) -> PrescriptionRenderer:
    return request.app.state.renderer
