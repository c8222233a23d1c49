"""Tests for calexpand_lite.lite_rule_translator module.

Covers:
- pattern to canonical rule conversion and back
- degradation reasons for unusable rules
- human-readable display text
- iCalendar RRULE text in both directions
"""

from datetime import UTC, datetime

import pytest

from calexpand_lite.lite_exceptions import DegradationReason, RuleParseError, UnsupportedFrequencyError
from calexpand_lite.lite_models import (
    EndType,
    PatternFrequency,
    RecurrencePattern,
    RecurrenceRule,
    WeekdayCode,
)
from calexpand_lite.lite_rule_translator import (
    format_display,
    from_canonical,
    pattern_from_rrule_string,
    pattern_to_rrule_string,
    to_canonical,
    translate_canonical,
)

pytestmark = pytest.mark.unit


@pytest.fixture
def biweekly_pattern() -> RecurrencePattern:
    """Every 2 weeks on Monday and Wednesday, 5 times."""
    return RecurrencePattern(
        frequency=PatternFrequency.WEEKLY,
        interval=2,
        end_type=EndType.AFTER,
        end_count=5,
        by_day_of_week=[WeekdayCode.MO, WeekdayCode.WE],
    )


class TestToCanonical:
    """Tests for UI pattern to canonical rule conversion."""

    def test_none_frequency_has_no_rule(self):
        assert to_canonical(RecurrencePattern()) is None

    def test_weekly_pattern(self, biweekly_pattern):
        rule = to_canonical(biweekly_pattern)

        assert rule.frequency == "weekly"
        assert rule.interval == 2
        assert rule.count == 5
        assert rule.until is None
        assert [entry.day for entry in rule.by_day] == ["mo", "we"]

    def test_interval_one_is_omitted(self):
        rule = to_canonical(RecurrencePattern(frequency=PatternFrequency.DAILY, interval=1))
        assert rule.interval is None
        assert rule.to_jmap() == {"@type": "RecurrenceRule", "frequency": "daily"}

    def test_until_is_mapped(self):
        end = datetime(2024, 6, 30, 23, 59, tzinfo=UTC)
        rule = to_canonical(
            RecurrencePattern(frequency=PatternFrequency.DAILY, end_type=EndType.UNTIL, end_date=end)
        )

        assert rule.until == end
        assert rule.count is None

    def test_predicates_of_other_frequencies_are_dropped(self):
        """byDay only belongs to weekly rules, byMonthDay to monthly, byMonth to yearly."""
        rule = to_canonical(
            RecurrencePattern(
                frequency=PatternFrequency.MONTHLY,
                by_day_of_week=[WeekdayCode.FR],
                by_month_day=[1, 15],
                by_month=[3],
            )
        )

        assert rule.by_day is None
        assert rule.by_month_day == [1, 15]
        assert rule.by_month is None

    def test_yearly_months_are_strings(self):
        rule = to_canonical(RecurrencePattern(frequency=PatternFrequency.YEARLY, by_month=[1, 6]))
        assert rule.by_month == ["1", "6"]


class TestFromCanonical:
    """Tests for canonical rule to UI pattern conversion."""

    def test_absent_rule(self):
        outcome = translate_canonical(None)

        assert outcome.pattern is None
        assert outcome.reason is None

    def test_unsupported_frequency_reports_reason(self):
        outcome = translate_canonical(RecurrenceRule(frequency="hourly"))

        assert outcome.pattern is None
        assert outcome.reason is DegradationReason.UNSUPPORTED_FREQUENCY
        assert "hourly" in outcome.message

    def test_missing_frequency_reports_malformed(self):
        outcome = translate_canonical(RecurrenceRule(count=3))

        assert outcome.pattern is None
        assert outcome.reason is DegradationReason.MALFORMED_RULE

    def test_from_canonical_unsupported_is_none(self):
        assert from_canonical(RecurrenceRule(frequency="minutely")) is None

    def test_defaults_and_count(self):
        pattern = from_canonical(RecurrenceRule(frequency="daily", count=4))

        assert pattern.frequency is PatternFrequency.DAILY
        assert pattern.interval == 1
        assert pattern.end_type is EndType.AFTER
        assert pattern.end_count == 4

    def test_unknown_weekday_codes_are_skipped(self):
        pattern = from_canonical(RecurrenceRule(frequency="weekly", by_day=["mo", "xx"]))
        assert pattern.by_day_of_week == [WeekdayCode.MO]

    def test_count_wins_over_until(self):
        pattern = from_canonical(RecurrenceRule(frequency="daily", count=2, until=datetime(2024, 2, 1)))

        assert pattern.end_type is EndType.AFTER
        assert pattern.end_date is None

    @pytest.mark.parametrize(
        "pattern",
        [
            RecurrencePattern(
                frequency=PatternFrequency.WEEKLY,
                interval=2,
                end_type=EndType.AFTER,
                end_count=5,
                by_day_of_week=[WeekdayCode.MO, WeekdayCode.WE],
            ),
            RecurrencePattern(
                frequency=PatternFrequency.MONTHLY,
                end_type=EndType.UNTIL,
                end_date=datetime(2024, 6, 30, tzinfo=UTC),
                by_month_day=[15, -1],
            ),
            RecurrencePattern(frequency=PatternFrequency.YEARLY, interval=3, by_month=[1, 6]),
        ],
    )
    def test_round_trip_preserves_pattern(self, pattern):
        assert from_canonical(to_canonical(pattern)) == pattern


class TestFormatDisplay:
    """Tests for display text."""

    def test_no_recurrence(self):
        assert format_display(RecurrencePattern()) == "Does not repeat"

    def test_simple_weekly(self):
        assert format_display(RecurrencePattern(frequency=PatternFrequency.WEEKLY)) == "Weekly"

    def test_interval_days_and_count(self, biweekly_pattern):
        assert format_display(biweekly_pattern) == "Every 2 weeks on Mon, Wed 5 times"

    def test_until_date(self):
        pattern = RecurrencePattern(
            frequency=PatternFrequency.MONTHLY,
            end_type=EndType.UNTIL,
            end_date=datetime(2024, 6, 30, 23, 59),
        )
        assert format_display(pattern) == "Monthly until 2024-06-30"

    def test_custom_translation(self):
        """A translation function receives label keys."""
        pattern = RecurrencePattern(frequency=PatternFrequency.DAILY, interval=3)
        labels = {"calendar.recurrence.everyN": "Alle {{count}} {{unit}}", "calendar.unit.daily": "Tage"}

        assert format_display(pattern, translate=lambda key: labels.get(key, key)) == "Alle 3 Tage"


class TestRRuleText:
    """Tests for iCalendar RRULE text conversion."""

    def test_pattern_to_rrule_string(self, biweekly_pattern):
        assert pattern_to_rrule_string(biweekly_pattern) == "FREQ=WEEKLY;INTERVAL=2;COUNT=5;BYDAY=MO,WE"

    def test_pattern_to_rrule_string_until_is_utc(self):
        pattern = RecurrencePattern(
            frequency=PatternFrequency.DAILY,
            end_type=EndType.UNTIL,
            end_date=datetime(2024, 6, 30, 23, 59, 59),
        )
        assert pattern_to_rrule_string(pattern) == "FREQ=DAILY;UNTIL=20240630T235959Z"

    def test_pattern_to_rrule_string_none(self):
        assert pattern_to_rrule_string(RecurrencePattern()) is None

    def test_parse_monthly_with_prefix(self):
        pattern = pattern_from_rrule_string("RRULE:FREQ=MONTHLY;BYMONTHDAY=1,15;COUNT=4")

        assert pattern.frequency is PatternFrequency.MONTHLY
        assert pattern.by_month_day == [1, 15]
        assert pattern.end_type is EndType.AFTER
        assert pattern.end_count == 4

    def test_parse_until(self):
        pattern = pattern_from_rrule_string("FREQ=WEEKLY;BYDAY=MO,FR;UNTIL=20240630T235959Z")

        assert pattern.end_type is EndType.UNTIL
        assert pattern.end_date == datetime(2024, 6, 30, 23, 59, 59, tzinfo=UTC)
        assert pattern.by_day_of_week == [WeekdayCode.MO, WeekdayCode.FR]

    def test_parse_yearly_months(self):
        pattern = pattern_from_rrule_string("FREQ=YEARLY;INTERVAL=2;BYMONTH=3,9")

        assert pattern.interval == 2
        assert pattern.by_month == [3, 9]

    def test_text_round_trip(self, biweekly_pattern):
        assert pattern_from_rrule_string(pattern_to_rrule_string(biweekly_pattern)) == biweekly_pattern

    @pytest.mark.parametrize("text", ["", "   ", "INTERVAL=2", "RRULE:"])
    def test_parse_missing_freq(self, text):
        with pytest.raises(RuleParseError):
            pattern_from_rrule_string(text)

    def test_parse_unsupported_frequency(self):
        with pytest.raises(UnsupportedFrequencyError):
            pattern_from_rrule_string("FREQ=HOURLY;INTERVAL=2")

    @pytest.mark.parametrize(
        "text",
        [
            "FREQ=DAILY;INTERVAL=often",
            "FREQ=DAILY;INTERVAL=0",
            "FREQ=WEEKLY;BYDAY=XX",
            "FREQ=MONTHLY;BYMONTHDAY=first",
            "FREQ=DAILY;UNTIL=someday",
            "FREQ=DAILY;COUNT=-3",
            "FREQ=DAILY;COUNT=0",
        ],
    )
    def test_parse_invalid_values(self, text):
        with pytest.raises(RuleParseError, match="Invalid RRULE format"):
            pattern_from_rrule_string(text)
