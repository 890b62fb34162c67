# aurora_backend/core/db.py
import logging
import os
from functools import lru_cache

import firebase_admin
from firebase_admin import credentials, firestore

from aurora_backend.core import config
from aurora_backend.core.repositories import (
    AdminStore, AppointmentStore, ContentStore,
    FirestoreAdminStore, FirestoreAppointmentStore, FirestoreContentStore,
)


def _find_credentials_path() -> str:
    """Looks for the service account file in the usual places (env var, cwd, backend folder)."""
    cred_path = config.GOOGLE_APPLICATION_CREDENTIALS
    if os.path.exists(cred_path):
        return cred_path

    logging.warning(f"Credential not found at '{cred_path}', trying 'backend/credentials.json'")
    if os.path.exists("backend/credentials.json"):
        return "backend/credentials.json"

    logging.warning("Credential not found in 'backend/'. Falling back to 'credentials.json'.")
    return "credentials.json"


def init_firebase() -> None:
    """Initialises the Firebase Admin SDK once per process."""
    if firebase_admin._apps:
        return
    cred_path = _find_credentials_path()
    if os.path.exists(cred_path):
        firebase_admin.initialize_app(credentials.Certificate(cred_path))
        logging.info(f"Firebase Admin SDK initialised with: {cred_path}")
    else:
        # Cloud Run / GCE: application default credentials
        firebase_admin.initialize_app()
        logging.info("Firebase Admin SDK initialised with application default credentials")


@lru_cache(maxsize=1)
def get_firestore_client():
    init_firebase()
    return firestore.client()


# --- FastAPI dependency providers ---
# Routers receive stores through Depends(); tests swap them via app.dependency_overrides.
def get_appointment_store() -> AppointmentStore:
    return FirestoreAppointmentStore(get_firestore_client())


def get_content_store() -> ContentStore:
    return FirestoreContentStore(get_firestore_client())


def get_admin_store() -> AdminStore:
    return FirestoreAdminStore(get_firestore_client())
