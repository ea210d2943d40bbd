"""Domain models for profiles, match requests, mentorships and audit events."""

from . import models

__all__ = ["models"]
