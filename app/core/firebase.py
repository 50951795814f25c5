"""
Firebase admin initialization and helpers.

Firestore is the document database behind the account, notification and
verification-code collections; Firebase Cloud Messaging carries push
notifications. Both come from the same Admin SDK app, initialised once.
"""

import logging
import os

import firebase_admin
from firebase_admin import credentials, firestore

from app.core.config import get_settings

logger = logging.getLogger(__name__)

# Global references to avoid re-initialization
_firebase_app = None
db = None


def init_firebase():
    """
    Initialize Firebase Admin SDK if not already initialized.

    Credentials come from FIREBASE_CREDENTIALS (settings / environment),
    falling back to the local dev file app/core/firebase_key.json.
    """

    global _firebase_app, db

    # Prevent re-initialization (important for Uvicorn reload)
    if firebase_admin._apps:
        if db is None:
            db = firestore.client()
        return

    cred_path = get_settings().FIREBASE_CREDENTIALS

    if not os.path.exists(cred_path):
        raise RuntimeError(
            f"Firebase credentials not found at: {cred_path}\n"
            "Set FIREBASE_CREDENTIALS env var or place firebase_key.json correctly."
        )

    cred = credentials.Certificate(cred_path)
    _firebase_app = firebase_admin.initialize_app(cred)

    db = firestore.client()

    logger.info("Firebase Admin initialized successfully.")


def get_db():
    """Return the Firestore client, initialising the Admin SDK on first use."""
    if db is None:
        init_firebase()
    return db
