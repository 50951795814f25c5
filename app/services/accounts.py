"""Business logic for the two account kinds: signup, login, lookups, password
changes and account deletion.

Every write of an account document goes through ``AccountService.update`` so
the credential pre-persist hook (password hashing) always runs.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Tuple

from app.core.auth_utils import AccountKind, CredentialStore
from app.core.errors import Conflict, NotFound, Unauthorized, UpstreamFailure, ValidationError
from app.core.store import DocumentStore
from app.models.caregiver import CAREGIVERS, EMAIL_PATTERN, new_caregiver_document
from app.models.user import (
    GMAIL_PATTERN,
    NAME_MAX_LENGTH,
    PASSWORD_MIN_LENGTH,
    USERS,
    new_user_document,
)

logger = logging.getLogger(__name__)

COLLECTIONS = {"user": USERS, "caregiver": CAREGIVERS}
NOT_FOUND = {"user": "User not found", "caregiver": "Caregiver not found"}


def normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


class AccountService:
    def __init__(self, store: DocumentStore, credentials: CredentialStore):
        self.store = store
        self.credentials = credentials

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------
    def get(self, kind: AccountKind, account_id: Optional[str]) -> Optional[Dict[str, Any]]:
        if not account_id:
            return None
        return self.store.get(COLLECTIONS[kind], account_id)

    def require(self, kind: AccountKind, account_id: Optional[str]) -> Dict[str, Any]:
        doc = self.get(kind, account_id)
        if doc is None:
            raise NotFound(NOT_FOUND[kind])
        return doc

    def find_by_email(self, kind: AccountKind, email: Optional[str]) -> Optional[Dict[str, Any]]:
        normalized = normalize_email(email)
        if not normalized:
            return None
        return self.store.find_one(COLLECTIONS[kind], "email", normalized)

    def require_by_email(self, kind: AccountKind, email: Optional[str]) -> Dict[str, Any]:
        doc = self.find_by_email(kind, email)
        if doc is None:
            raise NotFound(NOT_FOUND[kind])
        return doc

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    def update(
        self,
        kind: AccountKind,
        account_id: str,
        fields: Dict[str, Any],
        expected_revision: Optional[int] = None,
    ) -> Dict[str, Any]:
        prepared = self.credentials.prepare_account_write(kind, fields)
        doc = self.store.update(COLLECTIONS[kind], account_id, prepared, expected_revision)
        if doc is None:
            raise NotFound(NOT_FOUND[kind])
        return doc

    def _create(self, kind: AccountKind, document: Dict[str, Any]) -> Dict[str, Any]:
        if self.find_by_email(kind, document["email"]):
            raise Conflict("Email already exists")
        prepared = self.credentials.prepare_account_write(kind, document)
        account_id = self.store.insert(COLLECTIONS[kind], prepared)
        return self.require(kind, account_id)

    # ------------------------------------------------------------------
    # Signup / login
    # ------------------------------------------------------------------
    @staticmethod
    def _check_signup_fields(name: Optional[str], email: str, password: Optional[str]):
        if not name or not email or not password:
            raise ValidationError("All fields are required")
        if len(name.strip()) > NAME_MAX_LENGTH:
            raise ValidationError(f"Name cannot exceed {NAME_MAX_LENGTH} characters")
        if len(password) < PASSWORD_MIN_LENGTH:
            raise ValidationError(f"Password must be at least {PASSWORD_MIN_LENGTH} characters")

    def signup_user(
        self, name: Optional[str], email: Optional[str], password: Optional[str], phone: Optional[str] = None
    ) -> Tuple[Dict[str, Any], str]:
        normalized = normalize_email(email)
        self._check_signup_fields(name, normalized, password)
        if not normalized.endswith("@gmail.com"):
            raise ValidationError("Only Gmail addresses are allowed")
        if not GMAIL_PATTERN.match(normalized):
            raise ValidationError(f"{normalized} is not a valid Gmail address!")

        logger.info("Creating new user account for email: %s", normalized)
        user = self._create("user", new_user_document(name, normalized, password, phone or ""))
        return user, self.credentials.issue_token(user["id"], "user")

    def signup_caregiver(
        self, name: Optional[str], email: Optional[str], password: Optional[str], phone: Optional[str] = None
    ) -> Tuple[Dict[str, Any], str]:
        normalized = normalize_email(email)
        self._check_signup_fields(name, normalized, password)
        if not EMAIL_PATTERN.match(normalized):
            raise ValidationError(f"{normalized} is not a valid email address!")

        logger.info("Creating new caregiver account for email: %s", normalized)
        caregiver = self._create("caregiver", new_caregiver_document(name, normalized, password, phone or ""))
        return caregiver, self.credentials.issue_token(caregiver["id"], "caregiver")

    def authenticate(self, kind: AccountKind, email: Optional[str], password: Optional[str]) -> Dict[str, Any]:
        if not email or not password:
            raise ValidationError("Please provide email and password")

        doc = self.find_by_email(kind, email)
        if doc is None:
            logger.info("Login failed: %s not found for email %s", kind, email)
            if kind == "user":
                raise Unauthorized("Account not found. Please sign up to create an account.")
            raise Unauthorized("Invalid credentials")

        if not self.credentials.verify_password(password, doc.get("password")):
            logger.info("Login failed: invalid password for email %s", email)
            raise Unauthorized("Invalid credentials")
        return doc

    def issue_token(self, kind: AccountKind, doc: Dict[str, Any]) -> str:
        return self.credentials.issue_token(doc["id"], kind)

    def set_password(self, kind: AccountKind, email: str, new_password: str) -> Dict[str, Any]:
        if len(new_password) < PASSWORD_MIN_LENGTH:
            raise ValidationError(f"Password must be at least {PASSWORD_MIN_LENGTH} characters")
        doc = self.require_by_email(kind, email)
        return self.update(kind, doc["id"], {"password": new_password})

    # ------------------------------------------------------------------
    # Deletion
    # ------------------------------------------------------------------
    def delete(self, kind: AccountKind, doc: Dict[str, Any]) -> None:
        collection = COLLECTIONS[kind]
        if not self.store.delete(collection, doc["id"]):
            raise UpstreamFailure("Failed to delete account")

        if self.store.find_one(collection, "email", doc["email"]):
            logger.error("%s still exists after deletion attempt: %s", kind, doc["email"])
            raise UpstreamFailure("Failed to completely remove account")
        logger.info("%s account deleted: %s (ID: %s)", kind, doc["email"], doc["id"])
