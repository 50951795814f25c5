"""
Password reset and email verification flows shared by patients and caregivers.

Both flows hand out a six digit code by email (see ``verification``) and accept
it back once.
"""
from __future__ import annotations

import logging
from typing import Optional

from app.core.auth_utils import AccountKind
from app.core.errors import UpstreamFailure, ValidationError
from app.services.accounts import AccountService, normalize_email
from app.services.mail_templates import reset_code_email, verification_email
from app.services.notifications import NotificationDispatcher
from app.services.verification import (
    CAREGIVER_EMAIL,
    CAREGIVER_RESET,
    USER_EMAIL,
    USER_RESET,
    VerificationCodeIssuer,
)

logger = logging.getLogger(__name__)

RESET_PURPOSE = {"user": USER_RESET, "caregiver": CAREGIVER_RESET}
EMAIL_PURPOSE = {"user": USER_EMAIL, "caregiver": CAREGIVER_EMAIL}

GENERIC_RESET_MESSAGE = "If the email exists, a reset code has been sent"


class AccountRecovery:
    def __init__(self, accounts: AccountService, codes: VerificationCodeIssuer, dispatcher: NotificationDispatcher):
        self.accounts = accounts
        self.codes = codes
        self.dispatcher = dispatcher

    def forgot_password(self, kind: AccountKind, email: Optional[str]) -> None:
        """
        Email a reset code if the account exists. Never reveals whether it
        does: unknown emails and delivery failures are only logged.
        """
        normalized = normalize_email(email)
        if not normalized:
            raise ValidationError("Email is required")

        if self.accounts.find_by_email(kind, normalized) is None:
            logger.info("Password reset requested for unknown %s email: %s", kind, normalized)
            return

        code = self.codes.issue(RESET_PURPOSE[kind], normalized)
        subject, text, html = reset_code_email(kind, code, self.codes.ttl_minutes)
        try:
            self.dispatcher.send_email(normalized, subject, text, html)
        except UpstreamFailure as exc:
            logger.error("Error sending reset code email to %s: %s", normalized, exc.extra.get("error", exc.message))
            return
        logger.info("Reset code email sent to %s", normalized)

    def reset_password(
        self,
        kind: AccountKind,
        email: Optional[str],
        code: Optional[str],
        new_password: Optional[str],
    ) -> str:
        """
        Store the new password if the reset code is valid and return a fresh
        token. The code is spent only once the password is written, so a
        rejected password can be retried with the same code.
        """
        normalized = normalize_email(email)
        if not normalized or not code or not new_password:
            raise ValidationError("All fields are required")

        purpose = RESET_PURPOSE[kind]
        self.codes.check(purpose, normalized, code, "Invalid or expired reset code")
        doc = self.accounts.set_password(kind, normalized, new_password)
        self.codes.discard(purpose, normalized)
        logger.info("Password updated for %s %s", kind, normalized)
        return self.accounts.issue_token(kind, doc)

    def send_email_verification(self, kind: AccountKind, email: Optional[str], code: Optional[str] = None) -> str:
        """Issue (or register a client-chosen) verification code and email it."""
        normalized = normalize_email(email)
        if not normalized:
            raise ValidationError("Email is required")

        issued = self.codes.issue(EMAIL_PURPOSE[kind], normalized, code)
        subject, text, html = verification_email(kind, issued, self.codes.ttl_minutes)
        try:
            self.dispatcher.send_email(normalized, subject, text, html)
        except UpstreamFailure as exc:
            raise UpstreamFailure(
                "Failed to send verification code email, please try again",
                error=exc.extra.get("error", exc.message),
            ) from exc
        return issued

    def verify_email_code(self, kind: AccountKind, email: Optional[str], code: Optional[str]) -> None:
        normalized = normalize_email(email)
        if not normalized or not code:
            raise ValidationError("Email and verification code are required")
        self.codes.consume(EMAIL_PURPOSE[kind], normalized, code, "Invalid or expired verification code")
