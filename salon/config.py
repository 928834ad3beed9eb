# salon/config.py

import os
from dataclasses import dataclass, field
from typing import List, Optional


def _env(name: str, default: str = "") -> str:
    value = os.getenv(name, default)
    if value is None:
        return ""
    text = str(value).strip()
    # tolerate values quoted in .env files
    if len(text) >= 2 and text[0] == text[-1] and text[0] in ("'", '"'):
        text = text[1:-1].strip()
    return text


def _env_bool(name: str, default: bool = False) -> bool:
    return _env(name, "1" if default else "0").lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    database_url: str = "sqlite:///./salon.db"

    # auth
    secret_key: str = "change-me-later"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 30
    bcrypt_rounds: int = 12

    cors_origins: List[str] = field(
        default_factory=lambda: ["http://localhost:3000", "http://localhost:5173"]
    )

    # how long the "undo" of a soft delete is offered to the user
    undo_window_seconds: int = 10

    # WhatsApp Cloud API
    whatsapp_api_version: str = "v21.0"
    whatsapp_phone_number_id: str = ""
    whatsapp_token: str = ""
    whatsapp_country_code: str = "55"
    whatsapp_timeout: int = 20
    whatsapp_dry_run: bool = False

    log_level: str = "INFO"
    log_file: Optional[str] = None


def load_settings() -> Settings:
    """Build the settings from ``SALON_*`` environment variables."""
    defaults = Settings()
    origins = _env("SALON_CORS_ORIGINS")

    return Settings(
        database_url=_env("SALON_DATABASE_URL", defaults.database_url),
        secret_key=_env("SALON_SECRET_KEY", defaults.secret_key),
        algorithm=_env("SALON_JWT_ALGORITHM", defaults.algorithm),
        access_token_expire_minutes=int(
            _env("SALON_ACCESS_TOKEN_EXPIRE_MINUTES", str(defaults.access_token_expire_minutes))
        ),
        bcrypt_rounds=int(_env("SALON_BCRYPT_ROUNDS", str(defaults.bcrypt_rounds))),
        cors_origins=[o.strip() for o in origins.split(",") if o.strip()] if origins else defaults.cors_origins,
        undo_window_seconds=int(_env("SALON_UNDO_WINDOW_SECONDS", str(defaults.undo_window_seconds))),
        whatsapp_api_version=_env("WHATSAPP_API_VERSION", defaults.whatsapp_api_version),
        whatsapp_phone_number_id=_env("WHATSAPP_PHONE_NUMBER_ID"),
        whatsapp_token=_env("WHATSAPP_TOKEN"),
        whatsapp_country_code=_env("WHATSAPP_COUNTRY_CODE", defaults.whatsapp_country_code),
        whatsapp_timeout=int(_env("WHATSAPP_TIMEOUT", str(defaults.whatsapp_timeout))),
        whatsapp_dry_run=_env_bool("WHATSAPP_DRY_RUN", defaults.whatsapp_dry_run),
        log_level=_env("SALON_LOG_LEVEL", defaults.log_level).upper(),
        log_file=_env("SALON_LOG_FILE") or None,
    )


settings = load_settings()
