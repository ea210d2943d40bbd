"""Environment variable loading and validation."""

import os
from typing import List, Optional

from .exceptions import ConfigurationError

DEFAULT_DATABASE_URL = "sqlite:///./data/mentormatch.db"
VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class EnvironmentConfig:
    """Environment variable configuration holder."""

    def __init__(
        self,
        database_url: Optional[str] = None,
        log_level: Optional[str] = None,
        suggestion_ttl_days: Optional[int] = None,
        suggestion_limit: Optional[int] = None,
        smtp_host: Optional[str] = None,
        smtp_port: Optional[int] = None,
        smtp_user: Optional[str] = None,
        smtp_pass: Optional[str] = None,
        smtp_sender_name: Optional[str] = None,
    ):
        self.database_url = database_url or DEFAULT_DATABASE_URL
        self.log_level = log_level
        self.suggestion_ttl_days = suggestion_ttl_days
        self.suggestion_limit = suggestion_limit
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port or 587
        self.smtp_user = smtp_user
        self.smtp_pass = smtp_pass
        self.smtp_sender_name = smtp_sender_name or "Mentor Match"

    @property
    def email_enabled(self) -> bool:
        """The email channel is active only when an SMTP host is configured."""
        return bool(self.smtp_host)


def _parse_positive_int(name: str, raw: Optional[str], errors: List[str]) -> Optional[int]:
    if raw is None or raw.strip() == "":
        return None
    try:
        value = int(raw)
    except ValueError:
        errors.append(f"Invalid {name}: '{raw}'. Must be a valid integer.")
        return None
    if value < 1:
        errors.append(f"Invalid {name}: {value}. Must be a positive integer.")
        return None
    return value


def load_environment_config() -> EnvironmentConfig:
    """
    Load and validate environment variables.

    All variables are optional:
    - DATABASE_URL: SQLAlchemy URL (default: sqlite:///./data/mentormatch.db)
    - LOG_LEVEL: Override log level
    - MATCH_SUGGESTION_TTL_DAYS: Suggestion validity window in days (default 14)
    - MATCH_SUGGESTION_LIMIT: Suggestions per mentor per pass (default 10)
    - SMTP_HOST, SMTP_PORT, SMTP_USER, SMTP_PASS, SMTP_SENDER_NAME: enable
      the email notification channel

    Raises:
        ConfigurationError: If any variable is present but invalid
    """
    errors: List[str] = []

    log_level = os.getenv("LOG_LEVEL")
    if log_level and log_level.upper() not in VALID_LOG_LEVELS:
        errors.append(
            f"Invalid LOG_LEVEL: '{log_level}'. Must be one of: {', '.join(VALID_LOG_LEVELS)}"
        )

    ttl_days = _parse_positive_int(
        "MATCH_SUGGESTION_TTL_DAYS", os.getenv("MATCH_SUGGESTION_TTL_DAYS"), errors
    )
    limit = _parse_positive_int(
        "MATCH_SUGGESTION_LIMIT", os.getenv("MATCH_SUGGESTION_LIMIT"), errors
    )

    smtp_host = os.getenv("SMTP_HOST")
    smtp_port = _parse_positive_int("SMTP_PORT", os.getenv("SMTP_PORT"), errors)
    if smtp_port is not None and smtp_port > 65535:
        errors.append(f"Invalid SMTP_PORT: {smtp_port}. Must be between 1 and 65535.")

    smtp_user = os.getenv("SMTP_USER")
    smtp_pass = os.getenv("SMTP_PASS")
    if smtp_user and not smtp_pass:
        errors.append("SMTP_USER is set but SMTP_PASS is not. Both must be set for authentication.")
    elif smtp_pass and not smtp_user:
        errors.append("SMTP_PASS is set but SMTP_USER is not. Both must be set for authentication.")

    if errors:
        raise ConfigurationError(
            "Environment variable validation failed",
            errors=errors,
            suggestions=[
                "Copy .env.example to .env and review the values",
                "MATCH_SUGGESTION_* values must be positive integers",
                "Leave SMTP_HOST unset to disable email notifications",
            ],
        )

    return EnvironmentConfig(
        database_url=os.getenv("DATABASE_URL"),
        log_level=log_level.upper() if log_level else None,
        suggestion_ttl_days=ttl_days,
        suggestion_limit=limit,
        smtp_host=smtp_host,
        smtp_port=smtp_port,
        smtp_user=smtp_user,
        smtp_pass=smtp_pass,
        smtp_sender_name=os.getenv("SMTP_SENDER_NAME"),
    )
