"""Command-line entry for calexpand_lite.

Two subcommands:
- ``expand``: expand a JSON list of JMAP events over a window and print the
  instances as JSON
- ``describe``: print the human-readable text of an RRULE string
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from .config_manager import ConfigManager, ExpansionConfig
from .lite_datetime_utils import parse_iso_datetime
from .lite_exceptions import RecurrenceRuleError
from .lite_expansion_service import expand
from .lite_logging import configure_lite_logging
from .lite_models import MasterEvent
from .lite_rule_translator import format_display, pattern_from_rrule_string

logger = logging.getLogger(__name__)


def _create_parser() -> argparse.ArgumentParser:
    """Create argument parser for calexpand_lite CLI.

    Returns:
        Configured argument parser
    """
    parser = argparse.ArgumentParser(
        prog="calexpand_lite",
        description="Calexpand Lite - recurring calendar event expansion",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m calexpand_lite expand events.json --start 2024-01-01 --end 2024-02-01
  python -m calexpand_lite describe "FREQ=WEEKLY;INTERVAL=2;BYDAY=MO,WE;COUNT=5"
        """,
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    expand_parser = subparsers.add_parser("expand", help="Expand JMAP events over a window")
    expand_parser.add_argument("events_file", type=Path, metavar="EVENTS.json", help="JSON list of JMAP events")
    expand_parser.add_argument("--start", required=True, metavar="ISO", help="Window start (inclusive)")
    expand_parser.add_argument("--end", required=True, metavar="ISO", help="Window end (inclusive)")
    expand_parser.add_argument(
        "--max-iterations",
        type=int,
        metavar="N",
        help="Iteration cap per rule (default: 10000, or from CALEXPAND_MAX_ITERATIONS env var)",
    )

    describe_parser = subparsers.add_parser("describe", help="Describe an RRULE string")
    describe_parser.add_argument("rrule", help='RRULE text, e.g. "FREQ=DAILY;COUNT=3"')

    return parser


def _run_expand(args: argparse.Namespace) -> int:
    config_manager = ConfigManager()
    settings = config_manager.load_full_config()
    if args.max_iterations is not None:
        settings["max_iterations"] = args.max_iterations

    config = ExpansionConfig.from_settings(settings)

    try:
        window_start = parse_iso_datetime(args.start)
        window_end = parse_iso_datetime(args.end)
    except ValueError as e:
        logger.error("Invalid window bound: %s", e)
        return 2

    try:
        raw_events = json.loads(args.events_file.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.error("Cannot read events from %s: %s", args.events_file, e)
        return 2

    masters = []
    for raw in raw_events if isinstance(raw_events, list) else []:
        try:
            masters.append(MasterEvent.from_jmap(raw))
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Skipping event %s: %s", raw.get("id") if isinstance(raw, dict) else "?", e)

    result = expand(masters, window_start, window_end, config)
    for diagnostic in result.diagnostics:
        logger.warning("Event %s degraded: %s (%s)", diagnostic.master_id, diagnostic.reason.value, diagnostic.message)

    payload = [instance.model_dump(mode="json") for instance in result.instances]
    print(json.dumps(payload, indent=2))
    return 0


def _run_describe(args: argparse.Namespace) -> int:
    try:
        pattern = pattern_from_rrule_string(args.rrule)
    except RecurrenceRuleError as e:
        logger.error("Cannot describe rule: %s", e)
        return 1

    print(format_display(pattern))
    return 0


def main(argv: list[str] | None = None) -> int:
    """Run the calexpand_lite CLI.

    Returns:
        Process exit code
    """
    parser = _create_parser()
    args = parser.parse_args(argv)

    configure_lite_logging(debug_mode=args.debug)

    if args.command == "expand":
        return _run_expand(args)
    return _run_describe(args)


if __name__ == "__main__":
    sys.exit(main())
