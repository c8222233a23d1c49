"""calexpand_lite - recurring calendar event expansion.

Expands master events carrying a canonical recurrence rule into the
concrete instances that fall inside a query window, applying per-occurrence
overrides, and converts rules to and from the recurrence editor's pattern.
"""

__version__ = "0.1.0"

from .config_manager import ExpansionConfig
from .lite_exceptions import (
    CalexpandError,
    DegradationReason,
    MalformedRuleError,
    RecurrenceRuleError,
    RuleParseError,
    UnsupportedFrequencyError,
)
from .lite_expansion_service import expand, expand_events
from .lite_models import (
    EventInstance,
    ExcludedOverride,
    ExpansionDiagnostic,
    ExpansionResult,
    MasterEvent,
    PatchOverride,
    RecurrencePattern,
    RecurrenceRule,
)
from .lite_occurrence_generator import generate
from .lite_override_resolver import exclude_occurrence, patch_occurrence, recurrence_id_for
from .lite_rule_translator import format_display, from_canonical, to_canonical

__all__ = [
    "CalexpandError",
    "DegradationReason",
    "EventInstance",
    "ExcludedOverride",
    "ExpansionConfig",
    "ExpansionDiagnostic",
    "ExpansionResult",
    "MalformedRuleError",
    "MasterEvent",
    "PatchOverride",
    "RecurrencePattern",
    "RecurrenceRule",
    "RuleParseError",
    "RecurrenceRuleError",
    "UnsupportedFrequencyError",
    "exclude_occurrence",
    "expand",
    "expand_events",
    "format_display",
    "from_canonical",
    "generate",
    "patch_occurrence",
    "recurrence_id_for",
    "to_canonical",
]
