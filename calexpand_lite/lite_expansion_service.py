"""Recurring event expansion service - calexpand_lite.

Orchestrates occurrence generation and override resolution per master
event, clips the results to the query window and merges them with
non-recurring events into one list.
"""

import logging
from collections.abc import Iterable
from datetime import datetime
from typing import Optional

from .config_manager import ExpansionConfig
from .lite_datetime_utils import align_to_reference
from .lite_exceptions import DegradationReason
from .lite_models import EventInstance, ExpansionDiagnostic, ExpansionResult, MasterEvent
from .lite_occurrence_generator import generate
from .lite_override_resolver import ResolvedOccurrence, resolve

logger = logging.getLogger(__name__)


def build_instance(master: MasterEvent, resolved: ResolvedOccurrence) -> EventInstance:
    """Materialize a resolved occurrence of ``master`` as an event instance."""
    patch = resolved.patch
    title = master.title
    description = master.description
    location = master.location

    if patch is not None:
        if patch.title is not None:
            title = patch.title
        if patch.description is not None:
            description = patch.description
        if patch.location is not None:
            location = patch.location

    return EventInstance(
        id=f"{master.id}#{resolved.recurrence_id}",
        master_id=master.id,
        title=title,
        start=resolved.start,
        end=resolved.end,
        time_zone=master.time_zone,
        description=description,
        location=location,
        show_without_time=master.show_without_time,
        rule=master.rule,
        is_recurring_event_instance=True,
        recurrence_id=resolved.recurrence_id,
    )


def _expand_master(
    master: MasterEvent,
    window_start: datetime,
    window_end: datetime,
    config: ExpansionConfig,
) -> tuple[Optional[list[EventInstance]], Optional[ExpansionDiagnostic]]:
    """Expand one recurring master.

    Returns:
        (instances, diagnostic). ``instances`` is None when the rule is
        unusable and the master must be passed through as non-recurring.
    """
    assert master.rule is not None

    result = generate(master.rule, master.start, window_end, master.duration, config)
    if result.diagnostic is not None:
        return None, result.diagnostic.model_copy(update={"master_id": master.id})

    lower = align_to_reference(window_start, master.start)
    upper = align_to_reference(window_end, master.start)

    instances = []
    excluded = 0
    for occurrence in result.occurrences:
        resolved = resolve(occurrence, master.recurrence_overrides, master.time_zone)
        if resolved is None:
            excluded += 1
            continue
        if lower <= resolved.start <= upper:
            instances.append(build_instance(master, resolved))

    logger.debug(
        "Expanded event %s: generated=%d excluded=%d in_window=%d",
        master.id,
        len(result.occurrences),
        excluded,
        len(instances),
    )

    diagnostic = None
    if result.cap_reached:
        diagnostic = ExpansionDiagnostic(
            master_id=master.id,
            reason=DegradationReason.ITERATION_CAP_REACHED,
            message=(
                f"Iteration cap of {config.max_iterations} reached after "
                f"{len(result.occurrences)} occurrences"
            ),
        )
    return instances, diagnostic


def expand(
    master_events: Iterable[MasterEvent],
    window_start: datetime,
    window_end: datetime,
    config: Optional[ExpansionConfig] = None,
) -> ExpansionResult:
    """Expand master events into the instances that fall in a window.

    Events without a rule pass through unchanged. Events whose rule cannot
    be used pass through as non-recurring and are reported in
    ``diagnostics``; malformed recurrence data never raises.

    Args:
        master_events: Master events in display order
        window_start: Inclusive lower bound for instance starts
        window_end: Inclusive upper bound for instance starts
        config: Expansion settings

    Returns:
        ExpansionResult with instances in master order, each recurring
        master's instances in generation order
    """
    config = config or ExpansionConfig()
    instances: list[EventInstance] = []
    diagnostics: list[ExpansionDiagnostic] = []

    for master in master_events:
        if master.rule is None:
            instances.append(EventInstance.from_master(master))
            continue

        try:
            expanded, diagnostic = _expand_master(master, window_start, window_end, config)
        except (TypeError, ValueError, OverflowError) as e:
            logger.warning("Expansion failed for event %s; treating as non-recurring: %s", master.id, e)
            expanded = None
            diagnostic = ExpansionDiagnostic(
                master_id=master.id,
                reason=DegradationReason.MALFORMED_RULE,
                message=str(e),
            )

        if diagnostic is not None:
            diagnostics.append(diagnostic)

        if expanded is None:
            logger.info(
                "Event %s degraded to non-recurring (%s)", master.id, diagnostic.reason.value if diagnostic else "-"
            )
            instances.append(EventInstance.from_master(master))
        else:
            instances.extend(expanded)

    return ExpansionResult(instances=instances, diagnostics=diagnostics)


def expand_events(
    master_events: Iterable[MasterEvent],
    window_start: datetime,
    window_end: datetime,
    config: Optional[ExpansionConfig] = None,
) -> list[EventInstance]:
    """Expand master events and return only the instances."""
    return expand(master_events, window_start, window_end, config).instances
