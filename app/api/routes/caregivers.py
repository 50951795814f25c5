"""Caregiver API routes.

Authentication, the connection lifecycle with patients, and the sync endpoints
through which a caregiver edits a connected patient's reminders, memories,
emergency contacts and home location. The mobile client identifies the
caregiver by ``caregiverId`` in the body or query string.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from app.api.deps import get_accounts, get_connections, get_recovery, get_sync
from app.core.config import get_settings
from app.core.errors import NotFound, ValidationError
from app.models.caregiver import caregiver_detail, caregiver_profile, caregiver_public
from app.models.schemas import (
    CaregiverProfileSync,
    ConnectRequest,
    DeleteCaregiverRequest,
    EmailRequest,
    EmailVerificationRequest,
    LoginRequest,
    PatientListSync,
    PatientLocationSync,
    ResetPasswordRequest,
    SignupRequest,
)
from app.services.accounts import AccountService, normalize_email
from app.services.connections import ConnectionManager
from app.services.recovery import GENERIC_RESET_MESSAGE, AccountRecovery
from app.services.sync import SyncService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/caregivers", tags=["caregivers"])


# -------------------------
# Auth
# -------------------------
@router.post("/signup", status_code=status.HTTP_201_CREATED)
def signup(payload: SignupRequest, accounts: AccountService = Depends(get_accounts)):
    caregiver, token = accounts.signup_caregiver(
        payload.name, payload.email, payload.password, payload.phone_number or payload.phone
    )
    return {
        "success": True,
        "token": token,
        "caregiver": {
            "id": caregiver["id"],
            "name": caregiver["name"],
            "email": caregiver["email"],
            "phone": caregiver.get("phone") or "",
        },
    }


@router.post("/login")
def login(
    payload: LoginRequest,
    accounts: AccountService = Depends(get_accounts),
    connections: ConnectionManager = Depends(get_connections),
):
    caregiver = accounts.authenticate("caregiver", payload.email, payload.password)
    # Drop the primary patient if that account has gone away
    caregiver, _ = connections.verify_primary(caregiver)
    return {
        "success": True,
        "token": accounts.issue_token("caregiver", caregiver),
        "caregiver": caregiver_public(caregiver),
    }


def _check_email(email: Optional[str], accounts: AccountService):
    if not email:
        raise ValidationError("Email is required")
    if accounts.find_by_email("caregiver", email) is None:
        raise NotFound("Email not found")
    return {"success": True, "message": "Email exists"}


@router.post("/check-email")
def check_email(payload: EmailRequest, accounts: AccountService = Depends(get_accounts)):
    return _check_email(payload.email, accounts)


@router.get("/check-email")
def check_email_query(email: Optional[str] = Query(None), accounts: AccountService = Depends(get_accounts)):
    return _check_email(email, accounts)


@router.post("/forgot-password")
def forgot_password(payload: EmailRequest, recovery: AccountRecovery = Depends(get_recovery)):
    recovery.forgot_password("caregiver", payload.email)
    return {"success": True, "message": GENERIC_RESET_MESSAGE}


@router.post("/reset-password")
def reset_password(payload: ResetPasswordRequest, recovery: AccountRecovery = Depends(get_recovery)):
    token = recovery.reset_password("caregiver", payload.email, payload.code, payload.new_password)
    return {"success": True, "token": token, "message": "Password updated successfully"}


@router.post("/send-email-verification")
def send_email_verification(
    payload: EmailVerificationRequest,
    recovery: AccountRecovery = Depends(get_recovery),
):
    code = recovery.send_email_verification("caregiver", payload.email, payload.code)
    body = {"success": True, "message": "Verification code sent to email"}
    if get_settings().is_development:
        body["verificationCode"] = code
    return body


@router.post("/verify-code")
def verify_code(payload: EmailVerificationRequest, recovery: AccountRecovery = Depends(get_recovery)):
    recovery.verify_email_code("caregiver", payload.email, payload.code)
    return {"success": True, "message": "Verification code validated successfully"}


@router.post("/deleteAccount")
def delete_account(
    payload: DeleteCaregiverRequest,
    accounts: AccountService = Depends(get_accounts),
    connections: ConnectionManager = Depends(get_connections),
):
    if not payload.caregiver_id and not payload.caregiver_email:
        raise ValidationError("Either caregiver ID or email is required")

    caregiver = accounts.get("caregiver", payload.caregiver_id)
    if caregiver is None and payload.caregiver_email:
        caregiver = accounts.find_by_email("caregiver", payload.caregiver_email)
    if caregiver is None:
        raise NotFound("Caregiver not found. Please ensure the account exists.")

    accounts.delete("caregiver", caregiver)

    try:
        connections.on_caregiver_deleted(caregiver)
    except Exception:
        logger.exception("Error cleaning up patient connections for caregiver %s", caregiver["email"])

    return {"success": True, "message": "Caregiver account deleted successfully"}


# -------------------------
# Connections
# -------------------------
@router.post("/connect")
def connect(payload: ConnectRequest, connections: ConnectionManager = Depends(get_connections)):
    caregiver = connections.connect(payload.caregiver_id, payload.patient_email)
    return {
        "success": True,
        "message": "Connected to patient successfully",
        "caregiver": caregiver_detail(caregiver),
    }


@router.post("/disconnect")
def disconnect(payload: ConnectRequest, connections: ConnectionManager = Depends(get_connections)):
    connections.disconnect(payload.caregiver_id, payload.patient_email)
    return {"success": True, "message": "Caregiver disconnected from patient successfully"}


@router.get("/check-patient/{email}")
def check_patient(email: str, connections: ConnectionManager = Depends(get_connections)):
    exists = connections.patient_exists(email)
    logger.info("Patient check for %s: %s", normalize_email(email), "Found" if exists else "Not found")
    return {
        "success": True,
        "exists": exists,
        "message": "Patient found" if exists else "Patient not found or account deleted",
    }


@router.get("/verify-connections/{caregiver_id}")
def verify_connections(caregiver_id: str, connections: ConnectionManager = Depends(get_connections)):
    caregiver = connections.require_caregiver(caregiver_id)
    _, repaired = connections.verify_primary(caregiver)
    if repaired:
        return {"success": True, "valid": False, "message": "Removed connection to non-existent patient"}
    return {"success": True, "valid": True, "message": "All connections are valid"}


@router.get("/verify-connection/{caregiver_id}/{patient_email}")
def verify_connection(
    caregiver_id: str,
    patient_email: str,
    connections: ConnectionManager = Depends(get_connections),
):
    connected, repaired = connections.verify_connection(caregiver_id, patient_email)
    if repaired:
        message = "Patient account no longer exists. Connection removed."
    elif connected:
        message = "Connected to patient"
    else:
        message = "Not connected to this patient"
    return {"success": True, "connected": connected, "message": message}


@router.get("/verify-patient-connection/{caregiver_id}")
def verify_patient_connection(caregiver_id: str, connections: ConnectionManager = Depends(get_connections)):
    caregiver = connections.require_caregiver(caregiver_id)
    if not caregiver.get("patientEmail"):
        return {"success": True, "hasValidPatient": False, "message": "No patient connected"}

    caregiver, repaired = connections.verify_primary(caregiver)
    if repaired:
        return {
            "success": True,
            "hasValidPatient": False,
            "message": "Connected patient no longer exists and has been removed",
        }
    return {
        "success": True,
        "hasValidPatient": True,
        "patientEmail": caregiver["patientEmail"],
        "message": "Connected patient exists",
    }


@router.get("/info/{email}")
def caregiver_info(email: str, accounts: AccountService = Depends(get_accounts)):
    caregiver = accounts.require_by_email("caregiver", email)
    return {"success": True, "caregiver": {"name": caregiver.get("name"), "email": caregiver["email"]}}


# -------------------------
# Sync
# -------------------------
@router.post("/sync/patient-reminders")
def sync_patient_reminders(payload: PatientListSync, sync: SyncService = Depends(get_sync)):
    count = sync.sync_list(payload.caregiver_id, payload.patient_email, "reminders", payload.reminders)
    return {"success": True, "message": "Patient reminders synced successfully", "count": count}


@router.post("/sync/patient-memories")
def sync_patient_memories(payload: PatientListSync, sync: SyncService = Depends(get_sync)):
    count = sync.sync_list(payload.caregiver_id, payload.patient_email, "memories", payload.memories)
    return {"success": True, "message": "Patient memories synced successfully", "count": count}


@router.post("/sync/patient-contacts")
def sync_patient_contacts(payload: PatientListSync, sync: SyncService = Depends(get_sync)):
    count = sync.sync_list(payload.caregiver_id, payload.patient_email, "emergencyContacts", payload.contacts)
    return {"success": True, "message": "Patient emergency contacts synced successfully", "count": count}


@router.post("/sync/patient-location")
def sync_patient_location(payload: PatientLocationSync, sync: SyncService = Depends(get_sync)):
    sync.sync_home_location(payload.caregiver_id, payload.patient_email, payload.home_location)
    return {"success": True, "message": "Patient home location synced successfully"}


@router.get("/sync/patient-data/{patient_email}")
def get_patient_data(
    patient_email: str,
    caregiver_id: Optional[str] = Query(None, alias="caregiverId"),
    sync: SyncService = Depends(get_sync),
):
    return {"success": True, "patientData": sync.get_patient_data(caregiver_id, patient_email)}


@router.post("/sync/profile")
def sync_profile(payload: CaregiverProfileSync, accounts: AccountService = Depends(get_accounts)):
    if not payload.profile or not payload.caregiver_id:
        raise ValidationError("Profile data and caregiver ID must be provided")

    caregiver = accounts.require("caregiver", payload.caregiver_id)
    profile = payload.profile
    fields = {}
    if profile.name:
        fields["name"] = profile.name
    if profile.phone is not None:
        fields["phone"] = profile.phone
    if profile.profile_image_url:
        fields["profileImage"] = profile.profile_image_url

    if fields:
        accounts.update("caregiver", caregiver["id"], fields)
    return {"success": True, "message": "Caregiver profile data synced successfully"}


@router.get("/profile")
def get_profile(
    caregiver_id: Optional[str] = Query(None, alias="caregiverId"),
    accounts: AccountService = Depends(get_accounts),
    connections: ConnectionManager = Depends(get_connections),
):
    if not caregiver_id:
        raise ValidationError("Caregiver ID must be provided")
    caregiver, _ = connections.verify_primary(accounts.require("caregiver", caregiver_id))
    return {"success": True, "data": caregiver_profile(caregiver)}


@router.get("/{caregiver_id}/patients")
def connected_patients(caregiver_id: str, connections: ConnectionManager = Depends(get_connections)):
    patients = connections.connected_patients(caregiver_id)
    if not patients:
        return {"success": True, "patients": [], "message": "No connected patients found"}
    return {"success": True, "patients": patients, "message": "Successfully retrieved connected patients"}
