# clinic/core/config.py
from __future__ import annotations

from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # "firestore" in production, "memory" for local runs without credentials
    STORE_BACKEND: str = "firestore"

    # Service account JSON used by Firebase Admin
    FIREBASE_CREDENTIALS: str = "clinic/core/firebase_key.json"

    # Where patient images and generated prescriptions are written
    UPLOAD_DIR: str = "uploads"
    PDF_DIR: str = "pdfs"

    HOST: str = "0.0.0.0"
    PORT: int = 5000

    CORS_ORIGINS: List[str] = ["*"]

    # Structured debug events on stdout
    DEBUG_MODE: bool = True

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


settings = Settings()
