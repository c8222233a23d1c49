"""Data models for recurring event expansion - calexpand_lite."""

import calendar
import logging
from datetime import datetime, timedelta
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_serializer, field_validator

from .lite_datetime_utils import parse_iso_datetime
from .lite_duration import parse_duration
from .lite_exceptions import DegradationReason, MalformedRuleError, UnsupportedFrequencyError

logger = logging.getLogger(__name__)

RecurrenceId = str


class Frequency(str, Enum):
    """Recurrence frequencies the generator can step through."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class PatternFrequency(str, Enum):
    """Frequency choices offered by the recurrence editor."""

    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class EndType(str, Enum):
    """How a recurrence pattern stops."""

    NEVER = "never"
    AFTER = "after"
    UNTIL = "until"


class WeekdayCode(str, Enum):
    """Two-letter weekday codes in Python ``weekday()`` order."""

    MO = "MO"
    TU = "TU"
    WE = "WE"
    TH = "TH"
    FR = "FR"
    SA = "SA"
    SU = "SU"

    @property
    def weekday(self) -> int:
        """Python weekday number (Monday is 0)."""
        return list(WeekdayCode).index(self)

    @classmethod
    def parse(cls, code: str) -> Optional["WeekdayCode"]:
        """Parse a weekday code in any case, ignoring iCalendar ordinals like "-1FR"."""
        try:
            return cls(code.strip().upper()[-2:])
        except ValueError:
            return None


# Recurrence rules (canonical JMAP / JSCalendar RFC 8984 shape)


class NDay(BaseModel):
    """Day-of-week entry of a canonical rule's byDay list."""

    model_config = ConfigDict(populate_by_name=True)

    day: str = Field(..., description="Lowercase weekday code, e.g. 'mo'")
    nth_of_period: Optional[int] = Field(default=None, alias="nthOfPeriod")

    @field_validator("day", mode="before")
    @classmethod
    def _lowercase_day(cls, value: Any) -> Any:
        return value.strip().lower() if isinstance(value, str) else value


class NeverEnds(BaseModel):
    """Termination mode: the rule repeats forever."""

    kind: Literal["never"] = "never"


class AfterCount(BaseModel):
    """Termination mode: stop after ``count`` occurrences."""

    kind: Literal["after"] = "after"
    count: int


class UntilInstant(BaseModel):
    """Termination mode: no occurrence after ``until``."""

    kind: Literal["until"] = "until"
    until: datetime


Termination = Union[NeverEnds, AfterCount, UntilInstant]


class RecurrenceRule(BaseModel):
    """Canonical recurrence rule as carried on the wire.

    ``frequency`` stays a raw string because the wire may carry frequencies
    the engine does not model (hourly, minutely, secondly) or none at all;
    ``resolve_frequency()`` is the single place those are rejected.
    """

    model_config = ConfigDict(populate_by_name=True)

    frequency: Optional[str] = Field(default=None, description="RFC 5545 frequency, lowercase")
    interval: Optional[int] = Field(default=None, description="Step multiplier; omitted when 1")
    count: Optional[int] = Field(default=None, description="Maximum number of occurrences")
    until: Optional[datetime] = Field(default=None, description="Last allowed occurrence start")
    by_day: Optional[list[NDay]] = Field(default=None, alias="byDay")
    by_month_day: Optional[list[int]] = Field(default=None, alias="byMonthDay")
    by_month: Optional[list[str]] = Field(default=None, alias="byMonth")

    @field_validator("frequency", mode="before")
    @classmethod
    def _lowercase_frequency(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower() or None
        return value

    @field_validator("by_day", mode="before")
    @classmethod
    def _coerce_by_day(cls, value: Any) -> Any:
        # Wire rules carry either NDay objects or bare weekday strings
        if isinstance(value, list):
            return [{"day": item} if isinstance(item, str) else item for item in value]
        return value

    @field_validator("by_month", mode="before")
    @classmethod
    def _coerce_by_month(cls, value: Any) -> Any:
        if isinstance(value, list):
            return [str(item) for item in value]
        return value

    @property
    def termination(self) -> Termination:
        """The single active termination mode; count wins over until."""
        if self.count is not None:
            if self.until is not None:
                logger.debug("Rule carries both count and until; using count=%d", self.count)
            return AfterCount(count=self.count)
        if self.until is not None:
            return UntilInstant(until=self.until)
        return NeverEnds()

    @property
    def weekday_numbers(self) -> frozenset[int]:
        """Python weekday numbers named by ``by_day``; unknown codes are skipped."""
        codes = (WeekdayCode.parse(entry.day) for entry in self.by_day or [])
        return frozenset(code.weekday for code in codes if code is not None)

    @property
    def month_numbers(self) -> frozenset[int]:
        """Month numbers named by ``by_month``; non-numeric entries are skipped."""
        return frozenset(int(month) for month in self.by_month or [] if month.strip().isdigit())

    def matches_month_day(self, candidate: datetime) -> bool:
        """Check ``candidate`` against ``by_month_day``, honoring negative (from-end) days."""
        month_days = self.by_month_day or []
        if candidate.day in month_days:
            return True
        days_in_month = calendar.monthrange(candidate.year, candidate.month)[1]
        return candidate.day - days_in_month - 1 in month_days

    def resolve_frequency(self) -> Frequency:
        """Return the modeled frequency of this rule.

        Raises:
            MalformedRuleError: If frequency is missing or interval/count is below 1
            UnsupportedFrequencyError: If frequency is not daily/weekly/monthly/yearly
        """
        if not self.frequency:
            raise MalformedRuleError("Recurrence rule is missing frequency")
        try:
            frequency = Frequency(self.frequency)
        except ValueError:
            raise UnsupportedFrequencyError(f"Unsupported frequency: {self.frequency}") from None
        if self.interval is not None and self.interval < 1:
            raise MalformedRuleError(f"Invalid interval: {self.interval}")
        if self.count is not None and self.count < 1:
            raise MalformedRuleError(f"Invalid count: {self.count}")
        return frequency

    def to_jmap(self) -> dict[str, Any]:
        """Serialize to a JMAP RecurrenceRule object."""
        data = self.model_dump(by_alias=True, exclude_none=True, mode="json")
        return {"@type": "RecurrenceRule", **data}

    @classmethod
    def from_jmap(cls, data: dict[str, Any]) -> "RecurrenceRule":
        """Build a rule from a JMAP RecurrenceRule object, ignoring unmodeled keys."""
        return cls.model_validate({key: value for key, value in data.items() if key != "@type"})


class RecurrencePattern(BaseModel):
    """User-facing recurrence description edited in forms."""

    frequency: PatternFrequency = PatternFrequency.NONE
    interval: int = Field(default=1, ge=1, description="Repeat every N days/weeks/months/years")
    end_type: EndType = EndType.NEVER
    end_count: Optional[int] = Field(default=None, ge=1, description="Occurrences when end_type is 'after'")
    end_date: Optional[datetime] = Field(default=None, description="Last date when end_type is 'until'")
    by_day_of_week: Optional[list[WeekdayCode]] = Field(default=None, description="Weekly: ['MO', 'WE']")
    by_month_day: Optional[list[int]] = Field(default=None, description="Monthly: [1, 15]")
    by_month: Optional[list[int]] = Field(default=None, description="Yearly: [1, 6, 12]")


# Overrides


class ExcludedOverride(BaseModel):
    """The occurrence must not appear."""

    kind: Literal["excluded"] = "excluded"


class PatchOverride(BaseModel):
    """Partial field patch for a single occurrence."""

    kind: Literal["patch"] = "patch"
    title: Optional[str] = None
    start: Optional[datetime] = None
    duration: Optional[timedelta] = None
    description: Optional[str] = None
    location: Optional[str] = None

    @field_validator("duration", mode="before")
    @classmethod
    def _parse_iso_duration(cls, value: Any) -> Any:
        return parse_duration(value) if isinstance(value, str) else value

    @field_serializer("duration", when_used="unless-none")
    def serialize_duration(self, duration: timedelta) -> float:
        """Serialize duration as seconds."""
        return duration.total_seconds()


Override = Annotated[Union[ExcludedOverride, PatchOverride], Field(discriminator="kind")]


def parse_override(value: Any) -> Union[ExcludedOverride, PatchOverride]:
    """Convert a wire override object into an Override.

    ``{"excluded": true}`` becomes an exclusion; any other object is a patch
    whose JMAP ``locations`` map collapses to the first location name.
    """
    if isinstance(value, (ExcludedOverride, PatchOverride)):
        return value
    if not isinstance(value, dict):
        raise TypeError(f"Override must be an object, got {type(value).__name__}")
    if value.get("excluded") or value.get("kind") == "excluded":
        return ExcludedOverride()

    fields = dict(value)
    locations = fields.pop("locations", None)
    if isinstance(locations, dict) and "location" not in fields:
        first = next(iter(locations.values()), None)
        if isinstance(first, dict) and first.get("name"):
            fields["location"] = first["name"]
    fields.pop("kind", None)
    return PatchOverride.model_validate(fields)


# Events


class MasterEvent(BaseModel):
    """Stored event definition; recurring when ``rule`` is set."""

    # Identity and base fields
    id: str = Field(..., description="Event ID")
    title: str = Field(default="(No title)", description="Event title")
    start: datetime = Field(..., description="Start of the first occurrence")
    end: datetime = Field(..., description="End of the first occurrence")
    time_zone: Optional[str] = Field(default=None, description="IANA timezone label")
    description: Optional[str] = None
    location: Optional[str] = None
    show_without_time: bool = Field(default=False, description="All-day event flag")

    # Recurrence
    rule: Optional[RecurrenceRule] = Field(default=None, description="Recurrence rule")
    recurrence_overrides: dict[RecurrenceId, Override] = Field(
        default_factory=dict, description="Per-occurrence overrides keyed by recurrence id"
    )

    @field_validator("recurrence_overrides", mode="before")
    @classmethod
    def _coerce_overrides(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return {key: parse_override(item) for key, item in value.items()}
        return value

    @property
    def duration(self) -> timedelta:
        """Duration of every generated occurrence."""
        return self.end - self.start

    @property
    def is_recurring(self) -> bool:
        """True when the event carries a recurrence rule."""
        return self.rule is not None

    @classmethod
    def from_jmap(cls, data: dict[str, Any]) -> "MasterEvent":
        """Build a master event from a JMAP CalendarEvent object.

        Malformed recurrence data never raises here: an invalid rule is kept
        as an empty rule (reported as malformed during expansion) and invalid
        overrides are dropped with a warning.

        Raises:
            KeyError: If the event has no start
            ValueError: If start is not a datetime string
        """
        event_id = data.get("id") or ""
        start = parse_iso_datetime(data["start"])
        end = start + parse_duration(data.get("duration") or "PT0S")

        rule: Optional[RecurrenceRule] = None
        rules = data.get("recurrenceRules") or []
        if rules:
            if len(rules) > 1:
                logger.warning(
                    "Event %s carries %d recurrence rules; only the first is expanded",
                    event_id,
                    len(rules),
                )
            try:
                rule = RecurrenceRule.from_jmap(rules[0])
            except ValidationError as e:
                logger.warning("Invalid recurrence rule on event %s: %s", event_id, e)
                rule = RecurrenceRule()

        overrides: dict[str, Union[ExcludedOverride, PatchOverride]] = {}
        for recurrence_id, raw in (data.get("recurrenceOverrides") or {}).items():
            try:
                overrides[recurrence_id] = parse_override(raw)
            except (TypeError, ValidationError) as e:
                logger.warning(
                    "Dropping invalid override %s on event %s: %s", recurrence_id, event_id, e
                )

        location = None
        locations = data.get("locations") or {}
        first_location = next(iter(locations.values()), None) if isinstance(locations, dict) else None
        if isinstance(first_location, dict):
            location = first_location.get("name")

        return cls(
            id=event_id,
            title=data.get("title") or "(No title)",
            start=start,
            end=end,
            time_zone=data.get("timeZone"),
            description=data.get("description"),
            location=location,
            show_without_time=bool(data.get("showWithoutTime", False)),
            rule=rule,
            recurrence_overrides=overrides,
        )


class Occurrence(BaseModel):
    """One generated time span, before overrides."""

    start: datetime
    end: datetime


class EventInstance(BaseModel):
    """Materialized event ready for presentation."""

    id: str = Field(..., description="masterId#recurrenceId for recurrence instances")
    master_id: str = Field(..., description="ID of the master event")
    title: str
    start: datetime
    end: datetime
    time_zone: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    show_without_time: bool = False
    rule: Optional[RecurrenceRule] = None
    is_recurring_event_instance: bool = Field(
        default=False, description="True if generated from a recurrence rule"
    )
    recurrence_id: Optional[RecurrenceId] = Field(
        default=None, description="Override key of this occurrence"
    )

    @field_serializer("start", "end")
    def serialize_datetime(self, dt: datetime) -> str:
        """Serialize datetime fields to ISO format."""
        return dt.isoformat()

    @classmethod
    def from_master(cls, master: MasterEvent) -> "EventInstance":
        """Pass a master event through unchanged."""
        return cls(
            id=master.id,
            master_id=master.id,
            title=master.title,
            start=master.start,
            end=master.end,
            time_zone=master.time_zone,
            description=master.description,
            location=master.location,
            show_without_time=master.show_without_time,
            rule=master.rule,
        )


# Results


class ExpansionDiagnostic(BaseModel):
    """Why the expansion of one master event degraded."""

    master_id: Optional[str] = None
    reason: DegradationReason
    message: str = ""


class GenerationResult(BaseModel):
    """Output of the occurrence generator."""

    occurrences: list[Occurrence] = Field(default_factory=list)
    diagnostic: Optional[ExpansionDiagnostic] = None
    cap_reached: bool = False
    iterations: int = 0


class ExpansionResult(BaseModel):
    """Output of the expansion service."""

    instances: list[EventInstance] = Field(default_factory=list)
    diagnostics: list[ExpansionDiagnostic] = Field(default_factory=list)

    @property
    def degraded(self) -> bool:
        """True if any master event expanded only partially or not at all."""
        return bool(self.diagnostics)

    def reasons_for(self, master_id: str) -> list[DegradationReason]:
        """Degradation reasons recorded for one master event."""
        return [d.reason for d in self.diagnostics if d.master_id == master_id]
