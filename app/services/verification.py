"""
Time-boxed one-time codes for password resets and email verification.

Codes live in the document store (``verification_codes``) keyed by purpose and
normalized email, so they survive restarts and are shared by every instance.
Issuing a code overwrites any pending one for the same key and sweeps entries
that expired without being used.
"""
from __future__ import annotations

import logging
import secrets
import time
from typing import Callable, Optional

from app.core.errors import InvalidOrExpired
from app.core.store import DocumentStore, Where

logger = logging.getLogger(__name__)

VERIFICATION_CODES = "verification_codes"

USER_RESET = "user-reset"
USER_EMAIL = "user-email"
CAREGIVER_RESET = "caregiver-reset"
CAREGIVER_EMAIL = "caregiver-email"


def generate_code() -> str:
    return str(100000 + secrets.randbelow(900000))


def _key(purpose: str, email: str) -> str:
    return f"{purpose}:{email.strip().lower()}"


class VerificationCodeIssuer:
    def __init__(
        self,
        store: DocumentStore,
        ttl_seconds: int,
        clock: Callable[[], float] = time.time,
    ):
        self._store = store
        self._ttl = ttl_seconds
        self._clock = clock

    @property
    def ttl_minutes(self) -> int:
        return max(1, self._ttl // 60)

    def issue(self, purpose: str, email: str, code: Optional[str] = None) -> str:
        now = self._clock()
        self.purge_expired(now)

        code = code or generate_code()
        normalized = email.strip().lower()
        self._store.put(
            VERIFICATION_CODES,
            _key(purpose, normalized),
            {
                "purpose": purpose,
                "email": normalized,
                "code": code,
                "expiresAt": now + self._ttl,
            },
        )
        return code

    def check(self, purpose: str, email: str, code: str, message: Optional[str] = None) -> None:
        """Raise InvalidOrExpired unless ``code`` matches a live entry. The entry is kept."""
        key = _key(purpose, email)
        entry = self._store.get(VERIFICATION_CODES, key)
        if entry is None:
            raise InvalidOrExpired(message)

        if self._clock() > entry.get("expiresAt", 0):
            self._store.delete(VERIFICATION_CODES, key)
            raise InvalidOrExpired(message)

        if entry.get("code") != code:
            raise InvalidOrExpired(message)

    def discard(self, purpose: str, email: str) -> None:
        self._store.delete(VERIFICATION_CODES, _key(purpose, email))

    def consume(self, purpose: str, email: str, code: str, message: Optional[str] = None) -> None:
        """Like ``check``, but a matching entry is removed so it works only once."""
        self.check(purpose, email, code, message)
        self.discard(purpose, email)

    def purge_expired(self, now: Optional[float] = None) -> int:
        now = self._clock() if now is None else now
        expired = self._store.find(VERIFICATION_CODES, Where("expiresAt", "<", now))
        for entry in expired:
            self._store.delete(VERIFICATION_CODES, entry["id"])
        if expired:
            logger.info("Purged %d expired verification codes", len(expired))
        return len(expired)
