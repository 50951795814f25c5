"""Patient (User) documents stored in the ``users`` collection.

Documents keep the camelCase keys the mobile app reads, so projections below
can be returned as-is.
"""
import re
from datetime import datetime, timezone
from typing import Any, Dict, Optional

USERS = "users"

# Patients sign up with Gmail addresses only.
GMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@gmail\.com$")

NAME_MAX_LENGTH = 50
PASSWORD_MIN_LENGTH = 6

# List-valued domains a patient owns; caregiver sync merges into these.
LIST_DOMAINS = ("reminders", "memories", "emergencyContacts")

# Side fields that travel with the caregiverEmail back-reference.
CAREGIVER_REFERENCE_FIELDS = ("caregiverEmail", "caregiverName", "caregiverId")


def empty_medical_info() -> Dict[str, str]:
    return {"conditions": "", "medications": "", "allergies": "", "bloodType": ""}


def new_user_document(name: str, email: str, password: str, phone: str = "") -> Dict[str, Any]:
    """Fresh patient record; ``password`` is plaintext until the pre-persist hook runs."""
    now = datetime.now(timezone.utc)
    return {
        "name": name.strip(),
        "email": email,
        "password": password,
        "phone": (phone or "").strip(),
        "profileImage": None,
        "address": "",
        "age": "",
        "medicalInfo": empty_medical_info(),
        "homeLocation": None,
        "fcmToken": None,
        "expoPushToken": None,
        "reminders": [],
        "memories": [],
        "emergencyContacts": [],
        "lastSyncTime": now,
        "caregiverEmail": None,
        "createdAt": now,
    }


def medical_info(doc: Dict[str, Any]) -> Dict[str, str]:
    return {**empty_medical_info(), **(doc.get("medicalInfo") or {})}


def user_basic(doc: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": doc["id"],
        "name": doc.get("name"),
        "email": doc.get("email"),
        "profileImage": doc.get("profileImage"),
        "phone": doc.get("phone") or "",
        "address": doc.get("address") or "",
        "age": doc.get("age") or "",
        "medicalInfo": medical_info(doc),
    }


def user_public(doc: Dict[str, Any]) -> Dict[str, Any]:
    """Shape returned by signup / login."""
    return {**user_basic(doc), "homeLocation": doc.get("homeLocation")}


def user_with_data(doc: Dict[str, Any], include_caregiver: bool = True) -> Dict[str, Any]:
    data = {
        **user_public(doc),
        "reminders": doc.get("reminders") or [],
        "memories": doc.get("memories") or [],
        "emergencyContacts": doc.get("emergencyContacts") or [],
    }
    if include_caregiver:
        data["caregiverEmail"] = doc.get("caregiverEmail")
    return data


def user_summary(doc: Dict[str, Any], with_phone: bool = False) -> Dict[str, Any]:
    summary = {
        "id": doc["id"],
        "name": doc.get("name"),
        "email": (doc.get("email") or "").lower(),
        "profileImage": doc.get("profileImage"),
    }
    if with_phone:
        summary["phone"] = doc.get("phone") or ""
    return summary


def strip_private(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if doc is None:
        return None
    return {k: v for k, v in doc.items() if k not in ("password", "revision")}
