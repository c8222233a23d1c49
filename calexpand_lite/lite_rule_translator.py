"""Conversion between user-facing recurrence patterns and canonical rules.

Handles three representations of the same recurrence:
- RecurrencePattern: what the recurrence editor shows
- RecurrenceRule: the canonical JMAP rule stored on the master event
- iCalendar RRULE text ("FREQ=WEEKLY;BYDAY=MO,WE")
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from .lite_datetime_utils import parse_iso_datetime, to_utc
from .lite_exceptions import (
    DegradationReason,
    RecurrenceRuleError,
    RuleParseError,
    UnsupportedFrequencyError,
)
from .lite_models import (
    AfterCount,
    EndType,
    Frequency,
    NDay,
    PatternFrequency,
    RecurrencePattern,
    RecurrenceRule,
    UntilInstant,
    WeekdayCode,
)

logger = logging.getLogger(__name__)

_DEFAULT_LABELS: dict[str, str] = {
    "calendar.noRecurrence": "Does not repeat",
    "calendar.frequency.daily": "Daily",
    "calendar.frequency.weekly": "Weekly",
    "calendar.frequency.monthly": "Monthly",
    "calendar.frequency.yearly": "Yearly",
    "calendar.unit.daily": "days",
    "calendar.unit.weekly": "weeks",
    "calendar.unit.monthly": "months",
    "calendar.unit.yearly": "years",
    "calendar.recurrence.everyN": "Every {{count}} {{unit}}",
    "calendar.recurrence.on": "on",
    "calendar.recurrence.times": "{{count}} times",
    "calendar.recurrence.until": "until",
    "calendar.dayAbbr.mo": "Mon",
    "calendar.dayAbbr.tu": "Tue",
    "calendar.dayAbbr.we": "Wed",
    "calendar.dayAbbr.th": "Thu",
    "calendar.dayAbbr.fr": "Fri",
    "calendar.dayAbbr.sa": "Sat",
    "calendar.dayAbbr.su": "Sun",
}


@dataclass(frozen=True)
class TranslationOutcome:
    """Result of translating a canonical rule into a pattern.

    ``pattern`` is None when the rule is absent or unusable; ``reason`` then
    says why (it stays None for an absent rule).
    """

    pattern: Optional[RecurrencePattern]
    reason: Optional[DegradationReason] = None
    message: str = ""


def to_canonical(pattern: RecurrencePattern) -> Optional[RecurrenceRule]:
    """Convert a UI pattern to a canonical rule.

    Default values are not encoded: interval 1 is omitted, and predicates
    are emitted only for the frequency they belong to.

    Returns:
        RecurrenceRule, or None if frequency is 'none'
    """
    if pattern.frequency == PatternFrequency.NONE:
        return None

    fields: dict[str, Any] = {"frequency": pattern.frequency.value}

    if pattern.interval > 1:
        fields["interval"] = pattern.interval

    if pattern.end_type == EndType.AFTER and pattern.end_count:
        fields["count"] = pattern.end_count
    elif pattern.end_type == EndType.UNTIL and pattern.end_date:
        fields["until"] = pattern.end_date

    if pattern.frequency == PatternFrequency.WEEKLY and pattern.by_day_of_week:
        fields["by_day"] = [NDay(day=code.value.lower()) for code in pattern.by_day_of_week]

    if pattern.frequency == PatternFrequency.MONTHLY and pattern.by_month_day:
        fields["by_month_day"] = list(pattern.by_month_day)

    if pattern.frequency == PatternFrequency.YEARLY and pattern.by_month:
        fields["by_month"] = [str(month) for month in pattern.by_month]

    return RecurrenceRule(**fields)


def translate_canonical(rule: Optional[RecurrenceRule]) -> TranslationOutcome:
    """Convert a canonical rule to a UI pattern, reporting why it could not be.

    Sub-daily frequencies are deliberately not representable in the editor
    even though the wire format may carry them.
    """
    if rule is None:
        return TranslationOutcome(pattern=None)

    try:
        frequency = rule.resolve_frequency()
    except RecurrenceRuleError as e:
        if isinstance(e, UnsupportedFrequencyError):
            logger.warning("Unsupported frequency for pattern: %s", rule.frequency)
        else:
            logger.warning("Cannot translate recurrence rule: %s", e)
        return TranslationOutcome(pattern=None, reason=DegradationReason.for_error(e), message=str(e))

    pattern = RecurrencePattern(
        frequency=PatternFrequency(frequency.value),
        interval=rule.interval or 1,
    )

    termination = rule.termination
    if isinstance(termination, AfterCount):
        pattern.end_type = EndType.AFTER
        pattern.end_count = termination.count
    elif isinstance(termination, UntilInstant):
        pattern.end_type = EndType.UNTIL
        pattern.end_date = termination.until

    if rule.by_day:
        codes = [WeekdayCode.parse(entry.day) for entry in rule.by_day]
        pattern.by_day_of_week = [code for code in codes if code is not None] or None

    if rule.by_month_day:
        pattern.by_month_day = list(rule.by_month_day)

    if rule.by_month:
        months = [int(month) for month in rule.by_month if month.strip().isdigit()]
        pattern.by_month = months or None

    return TranslationOutcome(pattern=pattern)


def from_canonical(rule: Optional[RecurrenceRule]) -> Optional[RecurrencePattern]:
    """Convert a canonical rule to a UI pattern.

    Returns:
        RecurrencePattern, or None if the rule is absent, malformed or unsupported
    """
    return translate_canonical(rule).pattern


def _label(key: str, translate: Optional[Callable[[str], str]]) -> str:
    if translate is not None:
        return translate(key)
    return _DEFAULT_LABELS.get(key, key)


def format_display(pattern: RecurrencePattern, translate: Optional[Callable[[str], str]] = None) -> str:
    """Format a recurrence pattern for human-readable display.

    Args:
        pattern: UI recurrence pattern
        translate: Optional translation function mapping label keys to text

    Returns:
        Text such as "Every 2 weeks on Mon, Wed 5 times"
    """
    if pattern.frequency == PatternFrequency.NONE:
        return _label("calendar.noRecurrence", translate)

    frequency = pattern.frequency.value
    display = _label(f"calendar.frequency.{frequency}", translate)

    if pattern.interval > 1:
        display = (
            _label("calendar.recurrence.everyN", translate)
            .replace("{{count}}", str(pattern.interval))
            .replace("{{unit}}", _label(f"calendar.unit.{frequency}", translate))
        )

    if pattern.frequency == PatternFrequency.WEEKLY and pattern.by_day_of_week:
        days = ", ".join(
            _label(f"calendar.dayAbbr.{code.value.lower()}", translate) for code in pattern.by_day_of_week
        )
        display += f" {_label('calendar.recurrence.on', translate)} {days}"

    if pattern.end_type == EndType.AFTER and pattern.end_count:
        times = _label("calendar.recurrence.times", translate).replace("{{count}}", str(pattern.end_count))
        display += f" {times}"
    elif pattern.end_type == EndType.UNTIL and pattern.end_date:
        display += f" {_label('calendar.recurrence.until', translate)} {pattern.end_date.date().isoformat()}"

    return display


def pattern_to_rrule_string(pattern: RecurrencePattern) -> Optional[str]:
    """Convert a UI pattern to iCalendar RRULE text (without the "RRULE:" prefix).

    Returns:
        RRULE string, or None if frequency is 'none'
    """
    if pattern.frequency == PatternFrequency.NONE:
        return None

    parts = [f"FREQ={pattern.frequency.value.upper()}"]

    if pattern.interval > 1:
        parts.append(f"INTERVAL={pattern.interval}")

    if pattern.end_type == EndType.AFTER and pattern.end_count:
        parts.append(f"COUNT={pattern.end_count}")
    elif pattern.end_type == EndType.UNTIL and pattern.end_date:
        parts.append(f"UNTIL={to_utc(pattern.end_date).strftime('%Y%m%dT%H%M%SZ')}")

    if pattern.frequency == PatternFrequency.WEEKLY and pattern.by_day_of_week:
        parts.append("BYDAY=" + ",".join(code.value for code in pattern.by_day_of_week))

    if pattern.frequency == PatternFrequency.MONTHLY and pattern.by_month_day:
        parts.append("BYMONTHDAY=" + ",".join(str(day) for day in pattern.by_month_day))

    if pattern.frequency == PatternFrequency.YEARLY and pattern.by_month:
        parts.append("BYMONTH=" + ",".join(str(month) for month in pattern.by_month))

    return ";".join(parts)


def pattern_from_rrule_string(rrule_string: str) -> RecurrencePattern:
    """Parse iCalendar RRULE text into a UI pattern.

    Args:
        rrule_string: RRULE string, e.g. "FREQ=WEEKLY;INTERVAL=2;BYDAY=MO,WE"

    Returns:
        Parsed RecurrencePattern

    Raises:
        RuleParseError: If the string is empty, lacks FREQ, or carries invalid values
        UnsupportedFrequencyError: If FREQ is not DAILY/WEEKLY/MONTHLY/YEARLY
    """
    if not rrule_string or not rrule_string.strip():
        raise RuleParseError("Empty RRULE string")

    text = rrule_string.strip()
    if text.upper().startswith("RRULE:"):
        text = text[len("RRULE:"):]

    params: dict[str, str] = {}
    for part in text.split(";"):
        if "=" not in part:
            continue
        key, value = part.split("=", 1)
        params[key.strip().upper()] = value.strip()

    freq = params.get("FREQ", "").lower()
    if not freq:
        raise RuleParseError("RRULE missing required FREQ parameter")
    try:
        frequency = Frequency(freq)
    except ValueError:
        raise UnsupportedFrequencyError(f"Unsupported frequency: {freq.upper()}") from None

    try:
        fields: dict[str, Any] = {
            "frequency": PatternFrequency(frequency.value),
            "interval": int(params["INTERVAL"]) if "INTERVAL" in params else 1,
        }

        if "COUNT" in params:
            fields["end_type"] = EndType.AFTER
            fields["end_count"] = int(params["COUNT"])
        elif "UNTIL" in params:
            fields["end_type"] = EndType.UNTIL
            fields["end_date"] = parse_iso_datetime(params["UNTIL"])

        if "BYDAY" in params:
            codes = [WeekdayCode.parse(day) for day in params["BYDAY"].split(",") if day.strip()]
            if any(code is None for code in codes):
                raise ValueError(f"Invalid BYDAY value: {params['BYDAY']}")
            fields["by_day_of_week"] = [code for code in codes if code is not None]

        if "BYMONTHDAY" in params:
            fields["by_month_day"] = [int(day) for day in params["BYMONTHDAY"].split(",")]

        if "BYMONTH" in params:
            fields["by_month"] = [int(month) for month in params["BYMONTH"].split(",")]

        # Built in one call so every field goes through model validation
        return RecurrencePattern(**fields)
    except ValueError as e:
        raise RuleParseError(f"Invalid RRULE format: {rrule_string}") from e
