"""DateTime helpers for wall-clock recurrence arithmetic.

The engine never consults a timezone database. Values arrive already
localized; these helpers only make naive and aware values comparable.
"""

import logging
import re
from datetime import UTC, datetime

logger = logging.getLogger(__name__)

_ICS_DATETIME_RE = re.compile(r"^\d{8}(T\d{6}Z?)?$")


def ensure_timezone_aware(dt: datetime) -> datetime:
    """Ensure datetime is timezone-aware.

    Args:
        dt: Datetime to make timezone-aware

    Returns:
        Timezone-aware datetime (UTC if originally naive)
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


def to_utc(dt: datetime) -> datetime:
    """Convert to an aware UTC datetime, treating naive values as UTC."""
    return ensure_timezone_aware(dt).astimezone(UTC)


def align_to_reference(dt: datetime, reference: datetime) -> datetime:
    """Return ``dt`` in a form that can be compared with ``reference``.

    - Naive reference, aware value: converted to UTC and made naive
    - Aware reference, naive value: given the reference's tzinfo (wall clock)
    - Otherwise unchanged
    """
    if reference.tzinfo is None:
        if dt.tzinfo is None:
            return dt
        return dt.astimezone(UTC).replace(tzinfo=None)
    if dt.tzinfo is None:
        return dt.replace(tzinfo=reference.tzinfo)
    return dt


def parse_iso_datetime(value: str) -> datetime:
    """Parse an ISO 8601 or iCalendar basic-format datetime string.

    Accepts "2024-03-01T09:00:00", "2024-03-01T09:00:00Z",
    "20240301T090000Z" and date-only "20240301".

    Raises:
        ValueError: If the string matches none of the supported formats
    """
    text = value.strip()

    if _ICS_DATETIME_RE.match(text):
        if "T" not in text:
            return datetime.strptime(text, "%Y%m%d")
        parsed = datetime.strptime(text.rstrip("Z"), "%Y%m%dT%H%M%S")
        return parsed.replace(tzinfo=UTC) if text.endswith("Z") else parsed

    return datetime.fromisoformat(text)
