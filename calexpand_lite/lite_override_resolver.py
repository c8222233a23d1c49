"""Per-occurrence override resolution for recurring events - calexpand_lite.

Overrides are keyed by a recurrence id derived from the occurrence's
original start. Lookup is an exact string match: an id produced with a
different timezone rule is simply not found and the occurrence passes
through unmodified.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union

from .lite_datetime_utils import align_to_reference, to_utc
from .lite_models import (
    ExcludedOverride,
    MasterEvent,
    Occurrence,
    PatchOverride,
    RecurrenceId,
)

logger = logging.getLogger(__name__)

OverrideMap = Mapping[RecurrenceId, Union[ExcludedOverride, PatchOverride]]


def format_recurrence_id(start: datetime, time_zone: Optional[str]) -> RecurrenceId:
    """Derive the recurrence id of an occurrence starting at ``start``.

    With a timezone label the id is the naive wall-clock time
    ("2024-01-08T09:00:00"); without one it is the UTC instant with a
    trailing Z ("2024-01-08T09:00:00Z"), naive values being taken as UTC.
    """
    if time_zone:
        return start.replace(tzinfo=None).strftime("%Y-%m-%dT%H:%M:%S")
    return to_utc(start).strftime("%Y-%m-%dT%H:%M:%SZ")


def recurrence_id_for(master: MasterEvent, start: datetime) -> RecurrenceId:
    """Recurrence id of ``master``'s occurrence starting at ``start``."""
    return format_recurrence_id(start, master.time_zone)


@dataclass(frozen=True)
class ResolvedOccurrence:
    """An occurrence that survived override resolution."""

    recurrence_id: RecurrenceId
    start: datetime
    end: datetime
    patch: Optional[PatchOverride] = None


def resolve(
    occurrence: Occurrence,
    overrides: OverrideMap,
    time_zone: Optional[str] = None,
) -> Optional[ResolvedOccurrence]:
    """Apply the override stored for ``occurrence``, if any.

    Args:
        occurrence: Generated occurrence
        overrides: Overrides keyed by recurrence id
        time_zone: Master event's timezone label (selects the id format)

    Returns:
        None if the occurrence is excluded, otherwise the resolved occurrence.
        A patched start replaces the start; the end is the patched duration
        after the new start, or else keeps the occurrence's own duration.
    """
    recurrence_id = format_recurrence_id(occurrence.start, time_zone)
    override = overrides.get(recurrence_id)

    if override is None:
        return ResolvedOccurrence(recurrence_id=recurrence_id, start=occurrence.start, end=occurrence.end)

    if isinstance(override, ExcludedOverride):
        logger.debug("Occurrence %s excluded by override", recurrence_id)
        return None

    new_start = occurrence.start
    if override.start is not None:
        new_start = align_to_reference(override.start, occurrence.start)

    if override.duration is not None:
        new_end = new_start + override.duration
    else:
        new_end = new_start + (occurrence.end - occurrence.start)

    return ResolvedOccurrence(recurrence_id=recurrence_id, start=new_start, end=new_end, patch=override)


def exclude_occurrence(master: MasterEvent, recurrence_id: RecurrenceId) -> MasterEvent:
    """Return a copy of ``master`` with one occurrence excluded.

    Used for "delete this occurrence only"; the input is not modified.
    """
    overrides = dict(master.recurrence_overrides)
    overrides[recurrence_id] = ExcludedOverride()
    return master.model_copy(update={"recurrence_overrides": overrides})


def patch_occurrence(
    master: MasterEvent,
    recurrence_id: RecurrenceId,
    *,
    title: Optional[str] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    description: Optional[str] = None,
    location: Optional[str] = None,
) -> MasterEvent:
    """Return a copy of ``master`` with one occurrence patched.

    Used for "edit this occurrence only". Only fields that differ from the
    series are recorded: the title when it changed, the start when it no
    longer maps to ``recurrence_id``, the duration when both start and end
    are given. Any earlier override for the same occurrence is replaced.
    """
    fields: dict[str, object] = {}

    if title is not None and title != master.title:
        fields["title"] = title
    if start is not None and format_recurrence_id(start, master.time_zone) != recurrence_id:
        fields["start"] = start
    if start is not None and end is not None:
        fields["duration"] = end - start
    if description:
        fields["description"] = description
    if location:
        fields["location"] = location

    overrides = dict(master.recurrence_overrides)
    overrides[recurrence_id] = PatchOverride.model_validate(fields)
    return master.model_copy(update={"recurrence_overrides": overrides})
