"""ISO 8601 duration helpers for JMAP event durations."""

import logging
import re
from datetime import timedelta

logger = logging.getLogger(__name__)

# JSCalendar durations: P[nW][nD][T[nH][nM][nS]]
_DURATION_RE = re.compile(
    r"^P(?:(?P<weeks>\d+)W)?(?:(?P<days>\d+)D)?"
    r"(?:T(?:(?P<hours>\d+)H)?(?:(?P<minutes>\d+)M)?(?:(?P<seconds>\d+)S)?)?$"
)


def parse_duration(duration: str) -> timedelta:
    """Parse an ISO 8601 duration string into a timedelta.

    Args:
        duration: Duration such as "PT1H30M" or "P1D"

    Returns:
        Parsed timedelta, or a zero timedelta when the string is not a duration
    """
    match = _DURATION_RE.match(duration.strip().upper()) if duration else None
    if not match:
        logger.warning("Invalid ISO 8601 duration %r, treating as zero", duration)
        return timedelta(0)

    parts = {name: int(value) for name, value in match.groupdict().items() if value}
    return timedelta(**parts)


def format_duration(duration: timedelta) -> str:
    """Format a timedelta as an ISO 8601 duration string.

    Days are folded into hours ("PT24H"), matching what calendar servers
    accept for timed events. A zero duration is "PT0S".

    Raises:
        ValueError: If the duration is negative
    """
    total_seconds = int(duration.total_seconds())
    if total_seconds < 0:
        raise ValueError(f"Cannot format negative duration: {duration}")

    hours, remainder = divmod(total_seconds, 3600)
    minutes, seconds = divmod(remainder, 60)

    result = "PT"
    if hours:
        result += f"{hours}H"
    if minutes:
        result += f"{minutes}M"
    if seconds:
        result += f"{seconds}S"

    return "PT0S" if result == "PT" else result
