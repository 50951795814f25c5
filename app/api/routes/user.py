"""Patient (user) API routes.

Self-service profile and list sync for the patient app, plus the lookups
caregivers use to find and read a patient. ``/{user_id}`` is declared last so
it does not shadow the fixed paths.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends

from app.api.deps import (
    get_accounts,
    get_connections,
    get_current_account,
    get_current_caregiver,
    get_current_user,
    get_store,
)
from app.core.errors import Forbidden, NotFound, ValidationError
from app.core.store import DocumentStore
from app.models.schemas import ConnectCaregiverRequest, UserUpdate
from app.models.user import user_basic, user_public, user_summary, user_with_data
from app.services.accounts import AccountService, normalize_email
from app.services.connections import ConnectionManager
from app.services.sync import replace_own_list

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/user", tags=["user"])

# request key -> stored list, and the error shown for a non-list value
SELF_SYNC_LISTS = {
    "reminders": ("reminders", "Reminders must be an array"),
    "memories": ("memories", "Memories must be an array"),
    "contacts": ("emergencyContacts", "Contacts must be an array"),
}

SAMPLE_ACTIVITIES = [
    ("App Login", timedelta(hours=1), "User logged into the application"),
    ("Memory Game", timedelta(hours=2), "Completed memory game with score 85%"),
    ("Medication", timedelta(hours=5), "Marked medication reminder as completed"),
    ("Exercise", timedelta(days=1), "Completed daily exercise routine"),
    ("App Usage", timedelta(days=2), "Viewed family photos"),
]


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# -------------------------
# Availability
# -------------------------
@router.get("/ping")
async def ping():
    return {"success": True, "timestamp": _now_iso(), "message": "Server is available"}


@router.get("")
async def root():
    return {"success": True, "timestamp": _now_iso(), "message": "User API is available"}


# -------------------------
# Own record
# -------------------------
def _apply_update(payload: UserUpdate, user: Dict[str, Any], accounts: AccountService) -> Dict[str, Any]:
    # Only whitelisted fields reach the store; connection fields are never client-writable
    fields = payload.model_dump(by_alias=True, exclude_unset=True)
    if not fields:
        return user
    return accounts.update("user", user["id"], fields)


@router.put("")
def update_user(
    payload: UserUpdate,
    user=Depends(get_current_user),
    accounts: AccountService = Depends(get_accounts),
):
    updated = _apply_update(payload, user, accounts)
    return {"success": True, "user": user_with_data(updated)}


@router.get("/profile")
def get_profile(user=Depends(get_current_user)):
    return {"success": True, "data": user_public(user)}


@router.put("/profile")
def update_profile(
    payload: UserUpdate,
    user=Depends(get_current_user),
    accounts: AccountService = Depends(get_accounts),
):
    updated = _apply_update(payload, user, accounts)
    return {"success": True, "data": user_with_data(updated)}


# -------------------------
# Sync
# -------------------------
@router.get("/sync/email/{email}")
def get_user_by_email(
    email: str,
    account=Depends(get_current_account),
    accounts: AccountService = Depends(get_accounts),
    connections: ConnectionManager = Depends(get_connections),
):
    normalized = normalize_email(email)
    if account["kind"] == "user":
        allowed = account.get("email") == normalized
    else:
        allowed = connections.is_connected(account, normalized)
    if not allowed:
        raise Forbidden("You are not authorized to access this data")

    user = accounts.require_by_email("user", normalized)
    return {"success": True, "user": user_with_data(user)}


def _get_own_list(key: str, user: Dict[str, Any]):
    field, _ = SELF_SYNC_LISTS[key]
    return {"success": True, key: user.get(field) or []}


def _replace_own_list(key: str, payload: Dict[str, Any], user: Dict[str, Any], store: DocumentStore):
    field, message = SELF_SYNC_LISTS[key]
    items = payload.get(key)
    if not isinstance(items, list):
        raise ValidationError(message)
    return {"success": True, key: replace_own_list(store, user["id"], field, items)}


@router.get("/sync/reminders")
def get_reminders(user=Depends(get_current_user)):
    return _get_own_list("reminders", user)


@router.post("/sync/reminders")
def sync_reminders(
    payload: Dict[str, Any] = Body(...),
    user=Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
):
    return _replace_own_list("reminders", payload, user, store)


@router.get("/sync/memories")
def get_memories(user=Depends(get_current_user)):
    return _get_own_list("memories", user)


@router.post("/sync/memories")
def sync_memories(
    payload: Dict[str, Any] = Body(...),
    user=Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
):
    return _replace_own_list("memories", payload, user, store)


@router.get("/sync/contacts")
def get_contacts(user=Depends(get_current_user)):
    return _get_own_list("contacts", user)


@router.post("/sync/contacts")
def sync_contacts(
    payload: Dict[str, Any] = Body(...),
    user=Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
):
    return _replace_own_list("contacts", payload, user, store)


@router.post("/sync/homeLocation")
def sync_home_location(
    payload: Dict[str, Any] = Body(...),
    user=Depends(get_current_user),
    accounts: AccountService = Depends(get_accounts),
):
    updated = accounts.update(
        "user",
        user["id"],
        {"homeLocation": payload.get("homeLocation"), "lastSyncTime": datetime.now(timezone.utc)},
    )
    return {"success": True, "homeLocation": updated.get("homeLocation")}


@router.get("/activities/{user_id}")
def get_activities(
    user_id: str,
    account=Depends(get_current_account),
    accounts: AccountService = Depends(get_accounts),
):
    # Placeholder feed until the app reports real activity
    now = datetime.now(timezone.utc)
    activities = [
        {"type": kind, "timestamp": (now - ago).isoformat(), "details": details}
        for kind, ago, details in SAMPLE_ACTIVITIES
    ]
    user = accounts.get("user", user_id)
    logger.info("Activities requested for user ID %s (found: %s)", user_id, user is not None)
    return {"success": True, "activities": activities, "userFound": user is not None}


# -------------------------
# Lookups
# -------------------------
@router.get("/profile/{email}")
def get_profile_by_email(email: str, accounts: AccountService = Depends(get_accounts)):
    user = accounts.find_by_email("user", email)
    if user is None:
        raise NotFound("User not found with this email")
    return {"success": True, **user_summary(user, with_phone=True)}


@router.get("/lookup/{email}")
def lookup_user(email: str, accounts: AccountService = Depends(get_accounts)):
    user = accounts.find_by_email("user", email)
    if user is None:
        raise NotFound("User not found with this email")
    return {"success": True, **user_summary(user)}


@router.post("/connect/caregiver")
def connect_caregiver(
    payload: ConnectCaregiverRequest,
    user=Depends(get_current_user),
    connections: ConnectionManager = Depends(get_connections),
):
    connections.connect_from_patient(user["id"], payload.caregiver_email)
    return {"success": True, "message": "Connected patient with caregiver successfully"}


@router.get("/patient/{patient_email}")
def get_patient_for_caregiver(
    patient_email: str,
    caregiver=Depends(get_current_caregiver),
    accounts: AccountService = Depends(get_accounts),
    connections: ConnectionManager = Depends(get_connections),
):
    if not connections.is_connected(caregiver, patient_email):
        raise Forbidden("Not authorized to access this patient data")

    patient = accounts.find_by_email("user", patient_email)
    if patient is None:
        raise NotFound("Patient not found")
    return {"success": True, "patient": user_with_data(patient, include_caregiver=False)}


@router.get("/{user_id}")
def get_user(
    user_id: str,
    account=Depends(get_current_account),
    accounts: AccountService = Depends(get_accounts),
):
    user = accounts.require("user", user_id)
    return {"success": True, "user": user_basic(user)}
