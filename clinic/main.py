from pathlib import Path

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from clinic.api.routes import consultations, doctors, patients, prescriptions
from clinic.core import firebase
from clinic.core.config import Settings, settings as default_settings
from clinic.core.errors import ClinicError
from clinic.services.file_sink import LocalFileSink
from clinic.services.memory_store import MemoryRecordStore
from clinic.services.prescription_pdf import PrescriptionRenderer
from clinic.services.record_store import FirestoreRecordStore, RecordStore


def build_store(settings: Settings) -> RecordStore:
    if settings.STORE_BACKEND == "memory":
        return MemoryRecordStore()
    if settings.STORE_BACKEND == "firestore":
        return FirestoreRecordStore(firebase.init_firebase(settings.FIREBASE_CREDENTIALS))
    raise RuntimeError(f"Unknown STORE_BACKEND: {settings.STORE_BACKEND}")


async def clinic_error_handler(request: Request, exc: ClinicError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def request_validation_handler(request: Request, exc: RequestValidationError):
    first = (exc.errors() or [{}])[0]
    field = ".".join(str(part) for part in first.get("loc", ())[1:])
    message = first.get("msg", "Invalid request")
    return JSONResponse(
        status_code=400,
        content={"error": f"{field}: {message}" if field else message},
    )


def create_app(
    settings: Settings = None,
    store: RecordStore = None,
    upload_sink: LocalFileSink = None,
    pdf_sink: LocalFileSink = None,
) -> FastAPI:
    """Build the API. Anything not passed in is created from settings."""
    settings = settings or default_settings

    app = FastAPI(title="Clinic Backend")
    app.state.settings = settings
    app.state.store = store
    app.state.upload_sink = upload_sink or LocalFileSink(settings.UPLOAD_DIR, "/uploads")
    pdf_sink = pdf_sink or LocalFileSink(settings.PDF_DIR, "/pdfs")
    app.state.renderer = PrescriptionRenderer(pdf_sink)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(ClinicError, clinic_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    @app.on_event("startup")
    def startup():
        """Connect the record store (once per process) unless one was injected."""
        if app.state.store is None:
            app.state.store = build_store(settings)
        print(f"Record store ready: {type(app.state.store).__name__}")

    @app.get("/")
    async def root():
        return {"message": "Clinic Backend is running"}

    @app.get("/health")
    async def health_check():
        return {"status": "ok"}

    app.include_router(doctors.router)
    app.include_router(patients.router)
    app.include_router(consultations.router)
    app.include_router(prescriptions.router)

    # Read-only public files
    for prefix, sink in (("/uploads", app.state.upload_sink), ("/pdfs", pdf_sink)):
        root = Path(sink.root)
        root.mkdir(parents=True, exist_ok=True)
        app.mount(prefix, StaticFiles(directory=str(root)), name=prefix.strip("/"))

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(app, host=default_settings.HOST, port=default_settings.PORT)
