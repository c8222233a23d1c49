"""Occurrence generation for canonical recurrence rules - calexpand_lite.

Stepping happens once per period at the frequency's own granularity. Each
period start is computed from the rule's anchor (``start + k * interval``
units) rather than from the previous candidate, so month-end clamping
(Jan 31 -> Feb 29) does not drift later periods.
"""

import calendar
import logging
from collections.abc import Iterator, Sequence
from datetime import datetime, timedelta
from typing import Optional, assert_never

from dateutil.relativedelta import relativedelta

from .config_manager import ExpansionConfig
from .lite_datetime_utils import align_to_reference
from .lite_exceptions import DegradationReason, RecurrenceRuleError
from .lite_models import (
    AfterCount,
    ExpansionDiagnostic,
    Frequency,
    GenerationResult,
    Occurrence,
    RecurrenceRule,
    UntilInstant,
)

logger = logging.getLogger(__name__)


def calculate_event_duration(start: datetime, end: datetime) -> timedelta:
    """Duration between two datetimes."""
    return end - start


def _period_start(anchor: datetime, frequency: Frequency, steps: int) -> datetime:
    """Start of the period ``steps`` frequency units after ``anchor``."""
    if frequency is Frequency.DAILY:
        return anchor + timedelta(days=steps)
    if frequency is Frequency.WEEKLY:
        return anchor + timedelta(weeks=steps)
    if frequency is Frequency.MONTHLY:
        return anchor + relativedelta(months=steps)
    if frequency is Frequency.YEARLY:
        return anchor + relativedelta(years=steps)
    assert_never(frequency)


def _matches(candidate: datetime, frequency: Frequency, rule: RecurrenceRule) -> bool:
    """Evaluate the frequency-specific predicate; predicates of other frequencies are ignored."""
    if frequency is Frequency.DAILY:
        return True
    if frequency is Frequency.WEEKLY:
        weekdays = rule.weekday_numbers
        return not weekdays or candidate.weekday() in weekdays
    if frequency is Frequency.MONTHLY:
        return not rule.by_month_day or rule.matches_month_day(candidate)
    if frequency is Frequency.YEARLY:
        months = rule.month_numbers
        return not months or candidate.month in months
    assert_never(frequency)


def _days_in_month(period_start: datetime, month_days: Sequence[int]) -> list[datetime]:
    """Listed days that exist in ``period_start``'s month, ascending; negative days count from the end."""
    last_day = calendar.monthrange(period_start.year, period_start.month)[1]
    days = set()
    for day in month_days:
        resolved = day if day > 0 else last_day + day + 1
        if 1 <= resolved <= last_day:
            days.add(resolved)
    return [period_start.replace(day=day) for day in sorted(days)]


def _candidates(
    start: datetime,
    frequency: Frequency,
    interval: int,
    rule: RecurrenceRule,
    config: ExpansionConfig,
) -> Iterator[datetime]:
    """Yield candidate datetimes in increasing order, forever or until datetime overflows."""
    weekly_search = config.weekly_day_search and frequency is Frequency.WEEKLY
    monthly_search = config.monthly_day_search and frequency is Frequency.MONTHLY and bool(rule.by_month_day)

    anchor = start
    if weekly_search:
        # Whole Monday-based weeks, like RFC 5545 with WKST=MO
        anchor = start - timedelta(days=start.weekday())
    elif monthly_search:
        anchor = start.replace(day=1)

    steps = 0
    while True:
        try:
            period_start = _period_start(anchor, frequency, steps * interval)
            if weekly_search:
                period = [period_start + timedelta(days=offset) for offset in range(7)]
            elif monthly_search:
                period = _days_in_month(period_start, rule.by_month_day or [])
            else:
                period = [period_start]
        except (OverflowError, ValueError):
            logger.debug("Candidate stepping overflowed after %d periods", steps)
            return

        yield from period
        steps += 1


def generate(
    rule: RecurrenceRule,
    start: datetime,
    window_end: datetime,
    duration: timedelta,
    config: Optional[ExpansionConfig] = None,
) -> GenerationResult:
    """Generate the occurrences of ``rule`` from ``start`` up to ``window_end``.

    Occurrences before any window start are emitted too (they count toward
    the rule's count); clipping to a window's lower bound is the caller's job.

    Args:
        rule: Canonical recurrence rule
        start: Start of the first occurrence; its time of day is preserved
        window_end: Inclusive upper bound for occurrence starts
        duration: Duration applied to every occurrence
        config: Expansion settings (iteration cap, weekly and monthly day search)

    Returns:
        GenerationResult with strictly increasing occurrences. A malformed or
        unsupported rule yields no occurrences and a diagnostic; hitting the
        iteration cap sets ``cap_reached`` and keeps what was generated.
    """
    config = config or ExpansionConfig()

    try:
        frequency = rule.resolve_frequency()
    except RecurrenceRuleError as e:
        logger.warning("Skipping occurrence generation: %s", e)
        return GenerationResult(
            diagnostic=ExpansionDiagnostic(reason=DegradationReason.for_error(e), message=str(e))
        )

    interval = rule.interval or 1
    upper = align_to_reference(window_end, start)

    termination = rule.termination
    max_count = termination.count if isinstance(termination, AfterCount) else None
    until = align_to_reference(termination.until, start) if isinstance(termination, UntilInstant) else None

    occurrences: list[Occurrence] = []
    iterations = 0
    cap_reached = False

    for candidate in _candidates(start, frequency, interval, rule, config):
        if candidate > upper:
            break
        if max_count is not None and len(occurrences) >= max_count:
            break
        if until is not None and candidate > until:
            break
        if iterations >= config.max_iterations:
            cap_reached = True
            break
        iterations += 1

        if candidate < start or not _matches(candidate, frequency, rule):
            continue
        if occurrences and candidate <= occurrences[-1].start:
            continue

        occurrences.append(Occurrence(start=candidate, end=candidate + duration))

    if cap_reached:
        logger.debug(
            "Iteration cap %d reached for %s rule; returning %d occurrences",
            config.max_iterations,
            frequency.value,
            len(occurrences),
        )

    return GenerationResult(occurrences=occurrences, cap_reached=cap_reached, iterations=iterations)


def generate_many(
    rules: Sequence[RecurrenceRule],
    start: datetime,
    window_end: datetime,
    duration: timedelta,
    config: Optional[ExpansionConfig] = None,
) -> GenerationResult:
    """Generate and merge occurrences of several rules sharing one start.

    Occurrences are deduplicated by start and sorted. The first diagnostic
    encountered is reported; ``cap_reached`` is set if any rule hit the cap.
    """
    by_start: dict[datetime, Occurrence] = {}
    diagnostic: Optional[ExpansionDiagnostic] = None
    cap_reached = False
    iterations = 0

    for rule in rules:
        result = generate(rule, start, window_end, duration, config)
        if result.diagnostic is not None and diagnostic is None:
            diagnostic = result.diagnostic
        cap_reached = cap_reached or result.cap_reached
        iterations += result.iterations
        for occurrence in result.occurrences:
            by_start.setdefault(occurrence.start, occurrence)

    return GenerationResult(
        occurrences=[by_start[key] for key in sorted(by_start)],
        diagnostic=diagnostic,
        cap_reached=cap_reached,
        iterations=iterations,
    )
