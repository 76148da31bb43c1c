"""
core/config.py -- Service settings, read from the environment and an optional .env.

Every tunable of the identity service lives on Settings: database URL,
session and activation lifetimes, bcrypt cost, cookie security, login rate
limit, allowed hosts and CORS origins, and the SMTP relay. Field names map to
upper-case environment variables (session_expire_seconds ->
SESSION_EXPIRE_SECONDS). Read them through get_settings(), not os.environ.

resolve_security_policy() derives the bcrypt cost from DEBUG when
BCRYPT_ROUNDS is unset and refuses lifetimes that would expire every session
or activation token at birth.

Layer rule: core/ is the kernel. This module may not import from api/ or auth/.
"""

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("bonsai.config")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'bonsai.db'}"

# bcrypt accepts cost factors 4..31. 4 keeps the test suite fast; 12 is the
# production default (~250ms per hash on current hardware).
_DEBUG_BCRYPT_ROUNDS = 4
_PRODUCTION_BCRYPT_ROUNDS = 12


class Settings(BaseSettings):
    """Identity service settings. Every field has a development default."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    database_url: str = _DEFAULT_DB_URL
    # Base origin embedded in activation e-mails (the web front end).
    web_origin: str = "http://localhost:3000"

    # ------------------------------------------------------------------
    # Sessions and activation tokens
    # ------------------------------------------------------------------

    secure_cookies: bool = False
    session_expire_seconds: int = 60 * 60 * 24 * 30  # 30 days, slid on every use
    session_rotate_on_renew: bool = False
    activation_expire_seconds: int = 60 * 15  # 15 minutes

    # 0 is the sentinel for "derive from DEBUG" -- see resolve_security_policy().
    bcrypt_rounds: int = 0

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    login_rate_limit: str = "10/minute"
    # slowapi counter backend; "memory://" is per process, use "redis://..." behind several workers.
    rate_limit_storage_uri: str = "memory://"
    allowed_hosts: list[str] = ["localhost", "127.0.0.1", "*.localhost"]
    cors_origins: list[str] = ["http://localhost", "http://localhost:3000", "http://127.0.0.1"]

    # ------------------------------------------------------------------
    # Outbound e-mail (empty smtp_host means delivery is not configured)
    # ------------------------------------------------------------------

    smtp_host: str = ""
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    smtp_use_ssl: bool = False
    email_from: str = "Contato <contato@meubonsai.app>"

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def resolve_security_policy(self) -> "Settings":
        """Resolve derived security settings and reject unusable lifetimes.

        Dev mode (DEBUG=true): bcrypt cost defaults to the minimum so tests and
            local logins stay fast.
        Production mode: bcrypt cost defaults to 12. Running without secure
            cookies is allowed (TLS may terminate upstream) but logged.
        Both modes: an explicit BCRYPT_ROUNDS outside 4..31 is rejected, and
            session / activation lifetimes must be positive.
        """
        if not self.bcrypt_rounds:
            self.bcrypt_rounds = _DEBUG_BCRYPT_ROUNDS if self.debug else _PRODUCTION_BCRYPT_ROUNDS
        if not 4 <= self.bcrypt_rounds <= 31:
            raise ValueError("BCRYPT_ROUNDS must be between 4 and 31.")
        if self.session_expire_seconds <= 0:
            raise ValueError("SESSION_EXPIRE_SECONDS must be positive.")
        if self.activation_expire_seconds <= 0:
            raise ValueError("ACTIVATION_EXPIRE_SECONDS must be positive.")
        if not self.debug and not self.secure_cookies:
            logger.warning("SECURE_COOKIES is off in production mode -- session cookies will be sent over plain HTTP.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide Settings, built on first call.

    Tests that change environment variables call get_settings.cache_clear().
    """
    return Settings()
