"""Patient authentication routes.

Signup/login hand out the bearer token the mobile app sends on every protected
call; password reset and email verification go through emailed codes.
"""
import logging

from fastapi import APIRouter, Depends, status

from app.api.deps import get_accounts, get_connections, get_current_account, get_recovery
from app.core.config import get_settings
from app.core.errors import ValidationError
from app.models.schemas import (
    DeleteUserRequest,
    EmailRequest,
    EmailVerificationRequest,
    LoginRequest,
    ResetPasswordRequest,
    SignupRequest,
)
from app.models.user import user_public
from app.services.accounts import AccountService
from app.services.connections import ConnectionManager
from app.services.recovery import GENERIC_RESET_MESSAGE, AccountRecovery

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/signup", status_code=status.HTTP_201_CREATED)
def signup(payload: SignupRequest, accounts: AccountService = Depends(get_accounts)):
    user, token = accounts.signup_user(payload.name, payload.email, payload.password, payload.phone)
    logger.info("New user account created successfully: %s", user["email"])
    return {
        "success": True,
        "token": token,
        "message": "User registered successfully",
        "user": user_public(user),
    }


@router.post("/login")
def login(payload: LoginRequest, accounts: AccountService = Depends(get_accounts)):
    user = accounts.authenticate("user", payload.email, payload.password)
    logger.info("Login successful for user: %s (%s)", user.get("name"), user["email"])
    return {
        "success": True,
        "token": accounts.issue_token("user", user),
        "user": user_public(user),
    }


@router.post("/forgot-password")
def forgot_password(payload: EmailRequest, recovery: AccountRecovery = Depends(get_recovery)):
    recovery.forgot_password("user", payload.email)
    return {"success": True, "message": GENERIC_RESET_MESSAGE}


@router.post("/reset-password")
def reset_password(payload: ResetPasswordRequest, recovery: AccountRecovery = Depends(get_recovery)):
    token = recovery.reset_password("user", payload.email, payload.code, payload.new_password)
    return {"success": True, "token": token, "message": "Password updated successfully"}


@router.post("/send-email-verification")
def send_email_verification(
    payload: EmailVerificationRequest,
    recovery: AccountRecovery = Depends(get_recovery),
):
    code = recovery.send_email_verification("user", payload.email, payload.code)
    body = {"success": True, "message": "Verification code sent to email"}
    if get_settings().is_development:
        body["verificationCode"] = code
    return body


@router.post("/verify-code")
def verify_code(payload: EmailVerificationRequest, recovery: AccountRecovery = Depends(get_recovery)):
    recovery.verify_email_code("user", payload.email, payload.code)
    return {"success": True, "message": "Verification code validated successfully"}


@router.post("/deleteAccount")
def delete_account(
    payload: DeleteUserRequest,
    accounts: AccountService = Depends(get_accounts),
    connections: ConnectionManager = Depends(get_connections),
):
    if not payload.user_id:
        raise ValidationError("User ID is required")

    user = accounts.require("user", payload.user_id)
    logger.info("[DELETE] Found user: %s (ID: %s)", user["email"], user["id"])

    accounts.delete("user", user)

    # A failed cleanup leaves dangling caregiver references that later reads repair
    try:
        connections.on_patient_deleted(user["email"])
    except Exception:
        logger.exception("[DELETE] Error cleaning up caregiver connections for %s", user["email"])
    return {"success": True, "message": "Account deleted successfully"}


@router.get("/verify-token")
def verify_token(account=Depends(get_current_account)):
    return {"success": True, "message": "Token is valid and user exists"}
