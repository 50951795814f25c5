"""Password hashing and access tokens for both account kinds."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Any, Dict, Literal, Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from app.core.config import Settings, get_settings
from app.core.errors import Unauthorized

logger = logging.getLogger(__name__)

AccountKind = Literal["user", "caregiver"]


@dataclass(frozen=True)
class TokenClaims:
    account_id: str
    kind: AccountKind


class CredentialStore:
    """bcrypt digests and HS256 tokens that expire after TOKEN_TTL_SECONDS."""

    def __init__(self, settings: Settings):
        self._pwd_context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__rounds=settings.BCRYPT_ROUNDS,
        )
        self._secret = settings.signing_key
        self._algorithm = settings.JWT_ALGORITHM
        self._ttl = timedelta(seconds=settings.TOKEN_TTL_SECONDS)

    def hash_password(self, password: str) -> str:
        return self._pwd_context.hash(password)

    def verify_password(self, password: str, digest: Optional[str]) -> bool:
        if not password or not digest:
            return False
        try:
            return self._pwd_context.verify(password, digest)
        except ValueError:
            # Not a bcrypt digest (e.g. a legacy plaintext value)
            return False

    def issue_token(self, account_id: str, kind: AccountKind = "user", now: Optional[datetime] = None) -> str:
        now = now or datetime.now(timezone.utc)
        claims = {"id": account_id, "kind": kind, "iat": now, "exp": now + self._ttl}
        return jwt.encode(claims, self._secret, algorithm=self._algorithm)

    def verify_token(self, token: str) -> TokenClaims:
        try:
            decoded = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except JWTError as exc:
            logger.info("JWT verification error: %s", exc)
            raise Unauthorized("Not authorized, token failed") from exc

        account_id = decoded.get("id")
        if not account_id:
            raise Unauthorized("Not authorized, token failed")
        return TokenClaims(account_id=str(account_id), kind=decoded.get("kind", "user"))

    def prepare_account_write(self, kind: AccountKind, fields: Dict[str, Any]) -> Dict[str, Any]:
        """
        Pre-persist hook for account documents: a plaintext ``password`` is
        replaced by its digest, and patients get ``passwordChangedAt`` stamped.
        """
        if "password" not in fields:
            return fields
        prepared = dict(fields)
        prepared["password"] = self.hash_password(prepared["password"])
        if kind == "user":
            # Back-dated a second so a token issued in the same request stays valid
            prepared["passwordChangedAt"] = datetime.now(timezone.utc) - timedelta(seconds=1)
        return prepared


@lru_cache(maxsize=1)
def get_credential_store() -> CredentialStore:
    return CredentialStore(get_settings())
