from __future__ import annotations

import logging
from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Waitlist settings loaded from the environment and an optional .env file.

    Each option parameterizes one adapter and carries no branching of its own.
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Document store (service account)
    firebase_project_id: Optional[str] = None
    firebase_client_email: Optional[str] = None
    firebase_private_key: Optional[str] = None
    firebase_storage_bucket: Optional[str] = None
    waitlist_collection: str = "waitlist"

    # Identity provider
    firebase_web_api_key: Optional[str] = None

    # Email
    resend_api_key: Optional[str] = None
    notification_recipient: str = "dev@kyozo.com"
    notification_sender: str = "Kyozo Waitlist <waitlist@contact.kyozo.com>"
    reply_sender: str = "Will from Kyozo <will@kyozo.com>"

    # Gates
    waitlist_passcode: str = "KYOZO2026"
    # Deprecated shared-secret admin login; never used for authentication
    admin_password: Optional[str] = None

    # Form sessions
    session_ttl_seconds: float = 30 * 60

    # HTTP
    cors_origins: List[str] = ["*"]
    http_timeout_seconds: float = 10.0

    @property
    def private_key(self) -> Optional[str]:
        """Service-account key with escaped newlines restored."""
        if self.firebase_private_key is None:
            return None
        return self.firebase_private_key.replace("\\n", "\n")

    @property
    def firestore_configured(self) -> bool:
        return bool(self.firebase_project_id and self.firebase_client_email and self.firebase_private_key)


def warn_deprecated(settings: Settings) -> None:
    if settings.admin_password:
        logger.warning(
            "ADMIN_PASSWORD is set but shared-secret admin login is deprecated; "
            "admins sign in with their identity provider account"
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    settings = Settings()
    warn_deprecated(settings)
    return settings
