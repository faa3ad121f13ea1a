import logging
import sys
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

# Look for .env in project root (parent of server/)
_env_file = Path(__file__).resolve().parent.parent.parent.parent / ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=_env_file, extra="ignore")

    # Environment
    env: Literal["development", "production"] = "development"

    # External ticket/payment service
    ticket_service_url: str = "http://localhost:4000/api"
    ticket_service_api_key: str = ""

    # Portal routes. The secure entry path is where the captive landing page
    # sends visitors once they continue; older deployments used /login.
    captive_path: str = "/captive"
    secure_entry_path: str = "/buy-ticket"
    catalog_entry_path: str = "/home"

    # Branding shown on the captive landing page
    portal_name: str = "Club Internet Access"
    portal_organization: str = "Université de Kinshasa - UNIKIN"
    currency: str = "CDF"

    # Visitor sessions (in-memory, per process)
    session_cookie_name: str = "portal_session"
    session_idle_minutes: int = 30

    # Trusted proxy IPs for X-Forwarded-For (comma-separated)
    trusted_proxies: str = "127.0.0.1,::1"

    # CORS - comma-separated origins or "*" for all (dev only)
    cors_origins: str = "*"

    # Rate limiting (disabled by default in dev, enable in prod)
    rate_limit_enabled: bool | None = None  # None = auto (disabled in dev, enabled in prod)
    catalog_rate_limit_per_minute: int = 60
    purchase_rate_limit_per_minute: int = 10

    @property
    def is_rate_limit_enabled(self) -> bool:
        """Check if rate limiting is enabled (auto-detect based on env if not set)."""
        if self.rate_limit_enabled is not None:
            return self.rate_limit_enabled
        return self.is_production

    @property
    def ticket_service_base_url(self) -> str:
        """Service URL without a trailing slash, ready for path joins."""
        return self.ticket_service_url.rstrip("/")

    @property
    def is_production(self) -> bool:
        return self.env == "production"


def validate_settings(settings: Settings) -> None:
    """Validate required settings and print helpful error messages."""
    errors = []

    if settings.is_production:
        if "localhost" in settings.ticket_service_url:
            errors.append("TICKET_SERVICE_URL must point at the ticket service in production")
        if settings.cors_origins == "*":
            errors.append(
                "CORS_ORIGINS should not be '*' in production - "
                "set to the portal's public origin"
            )

    for name in ("captive_path", "secure_entry_path", "catalog_entry_path"):
        if not getattr(settings, name).startswith("/"):
            errors.append(f"{name.upper()} must start with '/'")

    if not settings.ticket_service_api_key:
        logging.warning(
            "TICKET_SERVICE_API_KEY not set - requests to the ticket service are unauthenticated"
        )

    if errors:
        for error in errors:
            logging.error("Configuration error: %s", error)
        sys.exit(1)


@lru_cache
def get_settings() -> Settings:
    settings = Settings()
    validate_settings(settings)
    return settings
