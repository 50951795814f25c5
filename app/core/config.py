# app/core/config.py
from __future__ import annotations

import logging
from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

# Only used outside production; production refuses to start without JWT_SECRET.
DEV_JWT_SECRET = "your_secure_secret_here"


class Settings(BaseSettings):
    # development | production | test
    ENVIRONMENT: Literal["development", "production", "test"] = "development"
    PORT: int = 3001

    # Document store: "firestore" for the real thing, "memory" for dev/tests
    STORE_BACKEND: Literal["firestore", "memory"] = "firestore"
    FIREBASE_CREDENTIALS: str = "app/core/firebase_key.json"

    # Tokens / passwords
    JWT_SECRET: Optional[str] = None
    JWT_ALGORITHM: str = "HS256"
    TOKEN_TTL_SECONDS: int = 3600
    BCRYPT_ROUNDS: int = Field(default=12, ge=4, le=31)

    # Reset and email-verification codes share one TTL
    VERIFICATION_CODE_TTL_SECONDS: int = 600

    # Outbound email (Gmail SMTP by default)
    EMAIL_USER: str = ""
    EMAIL_PASSWORD: str = ""
    EMAIL_SENDER_NAME: str = "MindFlow"
    SMTP_HOST: str = "smtp.gmail.com"
    SMTP_PORT: int = 465

    # Expo push service
    EXPO_PUSH_URL: str = "https://exp.host/--/api/v2/push/send"
    EXPO_TIMEOUT_SECONDS: float = 10.0

    # Pretty-printed structured event logs
    DEBUG_EVENTS: bool = False

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    @model_validator(mode="after")
    def _require_secret_in_production(self):
        if not self.JWT_SECRET and self.ENVIRONMENT == "production":
            raise ValueError("JWT_SECRET must be set in production")
        return self

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT == "development"

    @property
    def email_configured(self) -> bool:
        return bool(self.EMAIL_USER and self.EMAIL_PASSWORD)

    @property
    def signing_key(self) -> str:
        if self.JWT_SECRET:
            return self.JWT_SECRET
        logger.warning("JWT_SECRET is not set; using the insecure development default")
        return DEV_JWT_SECRET


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
