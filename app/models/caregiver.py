"""Caregiver documents stored in the ``caregivers`` collection."""
import re
from datetime import datetime, timezone
from typing import Any, Dict

CAREGIVERS = "caregivers"

EMAIL_PATTERN = re.compile(r"^[\w\-.]+@([\w-]+\.)+[\w-]{2,4}$")


def new_caregiver_document(name: str, email: str, password: str, phone: str = "") -> Dict[str, Any]:
    return {
        "name": name.strip(),
        "email": email,
        "password": password,
        "phone": (phone or "").strip(),
        "profileImage": None,
        "patientEmail": None,
        "connectedPatients": [],
        "patientData": {},
        "fcmToken": None,
        "createdAt": datetime.now(timezone.utc),
    }


def empty_patient_slot() -> Dict[str, Any]:
    """Per-patient entry of the caregiver's ``patientData`` cache."""
    return {
        "reminders": [],
        "memories": [],
        "emergencyContacts": [],
        "homeLocation": None,
        "lastSync": datetime.now(timezone.utc),
    }


def caregiver_public(doc: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": doc["id"],
        "name": doc.get("name"),
        "email": doc.get("email"),
        "phone": doc.get("phone") or "",
        "patientEmail": doc.get("patientEmail"),
    }


def caregiver_profile(doc: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "name": doc.get("name"),
        "email": doc.get("email"),
        "phone": doc.get("phone") or "",
        "profileImage": doc.get("profileImage"),
        "patientEmail": doc.get("patientEmail"),
    }


def caregiver_detail(doc: Dict[str, Any]) -> Dict[str, Any]:
    """Full record minus credentials, returned after connect."""
    return {
        **caregiver_public(doc),
        "profileImage": doc.get("profileImage"),
        "connectedPatients": list(doc.get("connectedPatients") or []),
        "patientData": doc.get("patientData") or {},
    }
