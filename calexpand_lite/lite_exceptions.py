"""Custom exception hierarchy for recurrence expansion errors.

These exceptions never escape the expansion engine for malformed recurrence
data. They are raised at the point where a rule is found unusable and caught
where the degraded output is chosen, then reported as an
``ExpansionDiagnostic`` carrying a ``DegradationReason``.
"""

from enum import Enum


class CalexpandError(Exception):
    """Base exception for all calexpand_lite errors."""


class RecurrenceRuleError(CalexpandError):
    """A recurrence rule cannot be used for occurrence generation."""


class UnsupportedFrequencyError(RecurrenceRuleError):
    """Rule frequency is outside daily/weekly/monthly/yearly.

    Raised when:
    - The wire rule carries hourly, minutely or secondly
    - The frequency string is not an RFC 5545 frequency at all

    The event degrades to "no recurrence".
    """


class MalformedRuleError(RecurrenceRuleError):
    """Rule is missing a required field or carries an impossible value.

    Raised when:
    - frequency is missing or empty
    - interval or count is lower than 1
    """


class RuleParseError(RecurrenceRuleError):
    """iCalendar RRULE text could not be parsed."""


class DegradationReason(str, Enum):
    """Why an expansion produced less than the full recurrence."""

    UNSUPPORTED_FREQUENCY = "unsupported_frequency"
    MALFORMED_RULE = "malformed_rule"
    ITERATION_CAP_REACHED = "iteration_cap_reached"

    @classmethod
    def for_error(cls, error: RecurrenceRuleError) -> "DegradationReason":
        """Map a rule error to the reason reported to callers."""
        if isinstance(error, UnsupportedFrequencyError):
            return cls.UNSUPPORTED_FREQUENCY
        return cls.MALFORMED_RULE
