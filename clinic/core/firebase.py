"""
Firebase admin initialization and helpers.

The record store keeps doctors, patients, consultations and prescriptions
in Firestore. The client is created once per process and handed to the
store explicitly, so request handlers never reach for it directly.
"""

import os
import firebase_admin
from firebase_admin import credentials, firestore

from clinic.core.config import settings

# Global references to avoid re-initialization
_firebase_app = None
db = None


def init_firebase(cred_path: str = None):
    """
    Initialize Firebase Admin SDK if not already initialized.

    Priority:
    1. Explicit ``cred_path`` argument
    2. FIREBASE_CREDENTIALS setting (env var or .env)
    """

    global _firebase_app, db

    # Prevent re-initialization (important for Uvicorn reload)
    if firebase_admin._apps:
        if db is None:
            db = firestore.client()
        return db

    cred_path = cred_path or settings.FIREBASE_CREDENTIALS

    if not os.path.exists(cred_path):
        raise RuntimeError(
            f"Firebase credentials not found at: {cred_path}\n"
            "Set FIREBASE_CREDENTIALS env var or use STORE_BACKEND=memory."
        )

    cred = credentials.Certificate(cred_path)
    _firebase_app = firebase_admin.initialize_app(cred)

    db = firestore.client()

    print("Firebase Admin initialized successfully.")
    return db


def get_db():
    return db
