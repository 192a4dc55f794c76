"""
Configuration for the storefront API.

Settings are read from the environment (and a local .env file) once at
process start and handed to create_app(); nothing below main.py reads the
environment directly.
"""
import os
from dataclasses import dataclass, field
from typing import List

from dotenv import load_dotenv

load_dotenv()


def _split_csv(value: str) -> List[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


@dataclass
class Settings:
    """Runtime settings for the API."""

    # Database
    database_url: str = "mongodb://localhost:27017"
    database_name: str = "fashion_store"

    # Tokens
    jwt_secret: str = "change-me-access"
    refresh_token_secret: str = "change-me-refresh"
    access_token_ttl_minutes: int = 15
    refresh_token_ttl_days: int = 7

    # Password reset email
    frontend_url: str = "http://localhost:3000"
    resend_api_key: str = ""
    email_sender: str = "no-reply@fusion.store"

    # Payment gateway
    razorpay_key_id: str = ""
    razorpay_key_secret: str = ""

    # Misc
    invoice_brand: str = "Fusion"
    cors_allowed_origins: List[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"
    port: int = 8000

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables, falling back to defaults."""
        defaults = cls()
        return cls(
            database_url=os.getenv("DATABASE_URL", defaults.database_url),
            database_name=os.getenv("DATABASE_NAME", defaults.database_name),
            jwt_secret=os.getenv("JWT_SECRET", defaults.jwt_secret),
            refresh_token_secret=os.getenv("REFRESH_TOKEN_SECRET", defaults.refresh_token_secret),
            access_token_ttl_minutes=int(
                os.getenv("ACCESS_TOKEN_TTL_MINUTES", defaults.access_token_ttl_minutes)
            ),
            refresh_token_ttl_days=int(
                os.getenv("REFRESH_TOKEN_TTL_DAYS", defaults.refresh_token_ttl_days)
            ),
            frontend_url=os.getenv("FRONTEND_URL", defaults.frontend_url).rstrip("/"),
            resend_api_key=(os.getenv("RESEND_API_KEY") or "").strip(),
            email_sender=os.getenv("EMAIL_SENDER", defaults.email_sender),
            razorpay_key_id=(os.getenv("RAZORPAY_KEY_ID") or "").strip(),
            razorpay_key_secret=(os.getenv("RAZORPAY_KEY_SECRET") or "").strip(),
            invoice_brand=os.getenv("INVOICE_BRAND", defaults.invoice_brand),
            cors_allowed_origins=_split_csv(os.getenv("CORS_ALLOWED_ORIGINS", "*")) or ["*"],
            log_level=os.getenv("LOG_LEVEL", defaults.log_level).upper(),
            port=int(os.getenv("PORT", defaults.port)),
        )
