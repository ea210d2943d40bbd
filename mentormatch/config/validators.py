"""Non-fatal configuration checks."""

import warnings
from typing import Any, Dict, List


def check_for_warnings(config_dict: Dict[str, Any]) -> List[str]:
    """
    Inspect raw configuration for settings that are valid but suspicious.

    Args:
        config_dict: Raw configuration dictionary

    Returns:
        List of warning messages
    """
    messages = []

    matching = config_dict.get("matching", {})
    if isinstance(matching, dict):
        ttl_days = matching.get("suggestion_ttl_days")
        if isinstance(ttl_days, int) and 0 < ttl_days < 3:
            messages.append(
                f"Short suggestion_ttl_days ({ttl_days}) may expire suggestions before users respond"
            )

        limit = matching.get("suggestion_limit")
        if isinstance(limit, int) and limit > 50:
            messages.append(
                f"Large suggestion_limit ({limit}) will score many candidates per mentor"
            )

    regeneration = config_dict.get("regeneration", {})
    if isinstance(regeneration, dict) and regeneration.get("enabled") is False:
        messages.append("Scheduled regeneration is disabled; daemon mode will stay idle")

    return messages


def emit_warnings(messages: List[str]) -> None:
    """Emit each message as a UserWarning."""
    for message in messages:
        warnings.warn(message, UserWarning, stacklevel=2)
