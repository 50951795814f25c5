"""
API dependencies: service wiring and bearer-token auth.

Services are built per request on top of process-wide singletons (document
store, transports) so tests can swap any of them through
``app.dependency_overrides``.
"""

from typing import Any, Dict, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.auth_utils import CredentialStore, TokenClaims, get_credential_store
from app.core.config import Settings, get_settings
from app.core.errors import Forbidden, NotFound, Unauthorized
from app.core.firebase import get_db
from app.core.store import DocumentStore, FirestoreStore, InMemoryStore
from app.services.accounts import AccountService
from app.services.connections import ConnectionManager
from app.services.notifications import (
    ExpoPushTransport,
    FcmTransport,
    NotificationDispatcher,
    SmtpMailer,
)
from app.services.recovery import AccountRecovery
from app.services.sync import SyncService
from app.services.verification import VerificationCodeIssuer

# auto_error=False so a missing header answers with our own 401 envelope
security = HTTPBearer(auto_error=False)

_store: Optional[DocumentStore] = None
_push: Optional[FcmTransport] = None
_expo: Optional[ExpoPushTransport] = None


# -------------------------
# Singletons
# -------------------------
def get_store() -> DocumentStore:
    """Return the process-wide document store (Firestore, or in-memory for dev/tests)."""
    global _store
    if _store is not None:
        return _store

    settings = get_settings()
    if settings.STORE_BACKEND == "memory":
        _store = InMemoryStore()
    else:
        _store = FirestoreStore(get_db())
    return _store


def get_push():
    global _push
    if _push is None:
        _push = FcmTransport()
    return _push


def get_expo():
    global _expo
    if _expo is None:
        settings = get_settings()
        _expo = ExpoPushTransport(settings.EXPO_PUSH_URL, settings.EXPO_TIMEOUT_SECONDS)
    return _expo


def get_mailer(settings: Settings = Depends(get_settings)):
    return SmtpMailer(settings)


# -------------------------
# Services
# -------------------------
def get_credentials() -> CredentialStore:
    return get_credential_store()


def get_accounts(
    store: DocumentStore = Depends(get_store),
    credentials: CredentialStore = Depends(get_credentials),
) -> AccountService:
    return AccountService(store, credentials)


def get_connections(store: DocumentStore = Depends(get_store)) -> ConnectionManager:
    return ConnectionManager(store)


def get_sync(
    store: DocumentStore = Depends(get_store),
    connections: ConnectionManager = Depends(get_connections),
) -> SyncService:
    return SyncService(store, connections)


def get_code_issuer(
    store: DocumentStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> VerificationCodeIssuer:
    return VerificationCodeIssuer(store, settings.VERIFICATION_CODE_TTL_SECONDS)


def get_dispatcher(
    store: DocumentStore = Depends(get_store),
    push=Depends(get_push),
    expo=Depends(get_expo),
    mailer=Depends(get_mailer),
) -> NotificationDispatcher:
    return NotificationDispatcher(store, push, expo, mailer)


def get_recovery(
    accounts: AccountService = Depends(get_accounts),
    codes: VerificationCodeIssuer = Depends(get_code_issuer),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> AccountRecovery:
    return AccountRecovery(accounts, codes, dispatcher)


# -------------------------
# Auth
# -------------------------
def get_token_claims(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    credential_store: CredentialStore = Depends(get_credentials),
) -> TokenClaims:
    """
    Decode the bearer token from the Authorization header.

    Expects:
        Authorization: Bearer <token>
    """
    if credentials is None or not credentials.credentials:
        raise Unauthorized("Not authorized, no token")
    return credential_store.verify_token(credentials.credentials)


def get_current_account(
    claims: TokenClaims = Depends(get_token_claims),
    accounts: AccountService = Depends(get_accounts),
) -> Dict[str, Any]:
    """The account the token was issued for, whichever kind it is."""
    doc = accounts.get(claims.kind, claims.account_id)
    if doc is None:
        raise NotFound(f"User not found for id: {claims.account_id}")
    return {**doc, "kind": claims.kind}


def get_current_user(account: Dict[str, Any] = Depends(get_current_account)) -> Dict[str, Any]:
    if account["kind"] != "user":
        raise Forbidden("This endpoint is only available to patient accounts")
    return account


def get_current_caregiver(account: Dict[str, Any] = Depends(get_current_account)) -> Dict[str, Any]:
    if account["kind"] != "caregiver":
        raise Forbidden("Not authorized to access this patient data")
    return account
