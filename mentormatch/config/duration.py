"""Duration parsing for the suggestion regeneration interval."""

import re


class DurationParseError(ValueError):
    """Raised when a duration string cannot be parsed."""

    pass


_ISO_PATTERN = re.compile(r"^P(?:(\d+)D)?(?:T(?:(\d+)H)?(?:(\d+)M)?(?:(\d+(?:\.\d+)?)S)?)?$")
_HUMAN_PATTERN = re.compile(r"(\d+)\s*([smhd])")
_UNIT_SECONDS = {"s": 1, "m": 60, "h": 3600, "d": 86400}

MIN_INTERVAL_SECONDS = 300
MAX_INTERVAL_SECONDS = 7 * 86400


def parse_duration(duration_str: str) -> int:
    """
    Parse a duration string to seconds.

    Accepts human-readable values ("30m", "24h", "1d12h") and ISO-8601
    durations ("PT30M", "PT24H", "P1D").

    Raises:
        DurationParseError: If the duration string is invalid

    Examples:
        >>> parse_duration("24h")
        86400
        >>> parse_duration("PT30M")
        1800
    """
    duration_str = (duration_str or "").strip()

    if not duration_str:
        raise DurationParseError("Duration string cannot be empty")

    if duration_str.upper().startswith("P"):
        total = _parse_iso8601(duration_str.upper())
    else:
        total = _parse_human_readable(duration_str.lower())

    if total == 0:
        raise DurationParseError(f"Duration cannot be zero: '{duration_str}'")

    return total


def _parse_iso8601(duration_str: str) -> int:
    match = _ISO_PATTERN.match(duration_str)
    if not match:
        raise DurationParseError(
            f"Invalid ISO-8601 duration format: '{duration_str}'. "
            "Expected format like 'P1D', 'PT12H' or 'PT30M'"
        )

    days, hours, minutes, seconds = match.groups()
    return (
        int(days or 0) * 86400
        + int(hours or 0) * 3600
        + int(minutes or 0) * 60
        + int(float(seconds or 0))
    )


def _parse_human_readable(duration_str: str) -> int:
    parts = _HUMAN_PATTERN.findall(duration_str)
    if not parts:
        raise DurationParseError(
            f"Invalid duration format: '{duration_str}'. "
            "Expected format like '30m', '12h', '1d' or combinations like '1d12h'"
        )

    # Reject trailing garbage such as "12hx"
    if "".join(f"{num}{unit}" for num, unit in parts) != re.sub(r"\s+", "", duration_str):
        raise DurationParseError(
            f"Invalid characters in duration: '{duration_str}'. "
            "Use only digits and units: s, m, h, d"
        )

    return sum(int(num) * _UNIT_SECONDS[unit] for num, unit in parts)


def validate_duration_range(
    duration_seconds: int,
    min_seconds: int = MIN_INTERVAL_SECONDS,
    max_seconds: int = MAX_INTERVAL_SECONDS,
) -> None:
    """
    Validate that a regeneration interval is within an acceptable range.

    Raises:
        DurationParseError: If duration is outside the range
    """
    if duration_seconds < min_seconds:
        raise DurationParseError(
            f"Regeneration interval too short: {_humanize(duration_seconds)}. "
            f"Minimum is {_humanize(min_seconds)}."
        )

    if duration_seconds > max_seconds:
        raise DurationParseError(
            f"Regeneration interval too long: {_humanize(duration_seconds)}. "
            f"Maximum is {_humanize(max_seconds)}."
        )


def _humanize(seconds: int) -> str:
    for unit_seconds, label in ((86400, "day"), (3600, "hour"), (60, "minute")):
        if seconds >= unit_seconds:
            value = seconds // unit_seconds
            return f"{value} {label}{'s' if value != 1 else ''}"
    return f"{seconds} second{'s' if seconds != 1 else ''}"
