"""Configuration schema models using Pydantic."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from .duration import DurationParseError, parse_duration, validate_duration_range

DEFAULT_SUGGESTION_TTL_DAYS = 14
DEFAULT_SUGGESTION_LIMIT = 10


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    """Log output formats."""

    JSON = "json"
    KEY_VALUE = "key-value"


class MatchingConfig(BaseModel):
    """Suggestion generation and listing settings."""

    suggestion_ttl_days: int = Field(
        DEFAULT_SUGGESTION_TTL_DAYS,
        ge=1,
        le=365,
        description="Days a generated suggestion stays actionable (MATCH_SUGGESTION_TTL_DAYS)",
    )
    suggestion_limit: int = Field(
        DEFAULT_SUGGESTION_LIMIT,
        ge=1,
        le=100,
        description="Suggestions generated per mentor per pass (MATCH_SUGGESTION_LIMIT)",
    )
    candidate_pool_multiplier: int = Field(
        3, ge=1, le=20, description="Candidate oversampling factor relative to the limit"
    )
    min_candidate_pool: int = Field(
        30, ge=1, description="Lower bound on the number of candidates scored"
    )
    max_list_limit: int = Field(
        50, ge=1, le=500, description="Upper bound on list query page size"
    )

    def candidate_pool_size(self, limit: int) -> int:
        """Number of mentees to fetch when ``limit`` suggestions are wanted."""
        return max(limit * self.candidate_pool_multiplier, self.min_candidate_pool)


class RegenerationConfig(BaseModel):
    """Periodic suggestion regeneration settings."""

    enabled: bool = Field(True, description="Run the scheduled regeneration job in daemon mode")
    interval: str = Field("24h", description="Interval between regeneration passes")

    # Computed field
    interval_seconds: Optional[int] = None

    @field_validator("interval")
    @classmethod
    def validate_interval(cls, v: str) -> str:
        """Parse the interval early so a bad value fails at load time."""
        try:
            validate_duration_range(parse_duration(v))
        except DurationParseError as e:
            raise ValueError(str(e)) from e
        return v

    @model_validator(mode="after")
    def compute_interval_seconds(self):
        self.interval_seconds = parse_duration(self.interval)
        return self


class EmailConfig(BaseModel):
    """Email channel delivery settings."""

    use_tls: bool = Field(True, description="Use TLS/STARTTLS for secure connection")
    max_retries: int = Field(
        2, ge=0, le=10, description="Number of retry attempts for failed email sends"
    )
    retry_backoff_multiplier: float = Field(
        2.0, ge=1.0, le=5.0, description="Exponential backoff multiplier for retries"
    )
    retry_initial_delay: float = Field(
        1.0, ge=0.0, le=60.0, description="Initial retry delay in seconds"
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = Field(LogLevel.INFO, description="Log level")
    format: LogFormat = Field(
        LogFormat.KEY_VALUE, description="Log output format (json or key-value)"
    )

    model_config = {"use_enum_values": True}


class AppConfig(BaseModel):
    """Root configuration object for the matching engine."""

    matching: MatchingConfig = Field(default_factory=MatchingConfig)
    regeneration: RegenerationConfig = Field(default_factory=RegenerationConfig)
    email: EmailConfig = Field(default_factory=EmailConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
