from datetime import datetime, timedelta
from typing import Any, Callable

import pytest

from calexpand_lite.config_manager import ExpansionConfig
from calexpand_lite.lite_models import MasterEvent, RecurrenceRule


@pytest.fixture
def default_config() -> ExpansionConfig:
    """Expansion settings with library defaults."""
    return ExpansionConfig()


@pytest.fixture
def make_master() -> Callable[..., MasterEvent]:
    """Factory for master events starting Monday 2024-01-01 09:00 (naive, one hour long).

    Keyword arguments override any MasterEvent field; ``rule`` may be given
    as a dict of RecurrenceRule fields.
    """

    def _make(**overrides: Any) -> MasterEvent:
        start = overrides.pop("start", datetime(2024, 1, 1, 9, 0))
        fields: dict[str, Any] = {
            "id": "evt-1",
            "title": "Team Sync",
            "start": start,
            "end": overrides.pop("end", start + timedelta(hours=1)),
        }
        rule = overrides.pop("rule", None)
        if isinstance(rule, dict):
            rule = RecurrenceRule(**rule)
        fields["rule"] = rule
        fields.update(overrides)
        return MasterEvent(**fields)

    return _make


@pytest.fixture(autouse=True)
def clean_calexpand_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove CALEXPAND_* variables so host settings never leak into tests."""
    for key in (
        "CALEXPAND_MAX_ITERATIONS",
        "CALEXPAND_WEEKLY_DAY_SEARCH",
        "CALEXPAND_MONTHLY_DAY_SEARCH",
        "CALEXPAND_LOG_LEVEL",
        "CALEXPAND_DEBUG",
    ):
        monkeypatch.delenv(key, raising=False)
