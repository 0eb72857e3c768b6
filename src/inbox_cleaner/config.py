"""
Configuration management for Inbox Cleaner.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

from .constants import CREDENTIALS_PATH, GEMINI_MODEL, SCOPES, TOKEN_PATH
from .errors import ValidationError

# Load environment variables from .env file
load_dotenv()

_TRUTHY = {"1", "true", "yes", "on"}


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value.strip().lower() in _TRUTHY


def _env_float(name: str) -> float | None:
    value = os.getenv(name)
    if not value:
        return None
    try:
        return float(value)
    except ValueError as exc:
        raise ValidationError(f"{name} must be a number of seconds, got {value!r}") from exc


@dataclass
class ProviderConfig:
    """Which AI backends make up the provider chain."""

    gemini_key: str | None = None
    huggingface_key: str | None = None
    include_local: bool = True
    gemini_model: str = GEMINI_MODEL
    attempt_timeout: float | None = None  # seconds per provider attempt


@dataclass
class GmailConfig:
    """Gmail-related configuration settings."""

    credentials_file: Path = CREDENTIALS_PATH
    token_file: Path = TOKEN_PATH
    scopes: list[str] = field(default_factory=lambda: list(SCOPES))


@dataclass
class LoggingConfig:
    """Logging level and optional log file."""

    level: str = "INFO"
    log_file: Path | None = None


@dataclass
class Config:
    """Main application configuration."""

    providers: ProviderConfig
    gmail: GmailConfig
    logging: LoggingConfig

    @classmethod
    def load(cls) -> Config:
        """Load configuration from environment variables."""
        log_file = os.getenv("LOG_FILE")
        return cls(
            providers=ProviderConfig(
                gemini_key=os.getenv("GOOGLE_GEMINI_API_KEY") or None,
                huggingface_key=os.getenv("HUGGINGFACE_API_KEY") or None,
                include_local=_env_flag("AI_INCLUDE_LOCAL", True),
                gemini_model=os.getenv("GEMINI_MODEL", GEMINI_MODEL),
                attempt_timeout=_env_float("AI_ATTEMPT_TIMEOUT"),
            ),
            gmail=GmailConfig(
                credentials_file=Path(os.getenv("GMAIL_CREDENTIALS_FILE", str(CREDENTIALS_PATH))),
                token_file=Path(os.getenv("GMAIL_TOKEN_FILE", str(TOKEN_PATH))),
            ),
            logging=LoggingConfig(
                level=os.getenv("LOG_LEVEL", "INFO").upper(),
                log_file=Path(log_file) if log_file else None,
            ),
        )
