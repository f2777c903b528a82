"""Configuration for the block_name plugin.

Example ``block-name.yaml``:

    blocked_names:
      blocked_names_file: blocked-names.txt
      log_file: blocked-names.log
      log_format: tsv
      enforce_schedules: false

    schedules:
      time-to-sleep:
        mon: [{after: "21:00", before: "07:00"}]
        tue: [{after: "21:00", before: "07:00"}]
      work:
        mon: [{after: "09:00", before: "18:00"}]
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .audit import check_format
from .schedules import WeeklyRanges, parse_weekly_ranges
from .types import ConfigError


@dataclass
class BlockNameConfig:
    blocked_names_file: str
    log_file: str | None = None
    log_format: str = "tsv"
    schedules: dict[str, WeeklyRanges] = field(default_factory=dict)
    enforce_schedules: bool = False

    def __post_init__(self) -> None:
        check_format(self.log_format)


def _clock(value: Any) -> str:
    # YAML 1.1 reads an unquoted 21:00 as the base-60 integer 1260
    if isinstance(value, int) and not isinstance(value, bool):
        return f"{value // 60:02d}:{value % 60:02d}"
    return str(value)


def _day_pairs(pairs: Any) -> list[tuple[str, str]]:
    if not isinstance(pairs, list):
        raise ConfigError(f"Expected a list of time ranges, got {pairs!r}")
    result = []
    for item in pairs:
        if not isinstance(item, Mapping) or "after" not in item or "before" not in item:
            raise ConfigError(f"Time range needs 'after' and 'before': {item!r}")
        result.append((_clock(item["after"]), _clock(item["before"])))
    return result


def parse_schedules(raw: Mapping[str, Any] | None) -> dict[str, WeeklyRanges]:
    """Parse the ``schedules`` section into named weekly ranges.

    Raises:
        ConfigError: if the section is not shaped as expected.
        TimeFormatError: if a clock value is invalid.
    """
    schedules: dict[str, WeeklyRanges] = {}
    for name, days in (raw or {}).items():
        if not isinstance(days, Mapping):
            raise ConfigError(f"Schedule [{name}] must map weekdays to time ranges")
        schedules[str(name)] = parse_weekly_ranges(
            {str(day): _day_pairs(pairs) for day, pairs in days.items()}
        )
    return schedules


def config_from_dict(data: Mapping[str, Any], base_dir: Path | None = None) -> BlockNameConfig:
    """Build a config from an already-parsed mapping.

    Relative file paths are resolved against ``base_dir`` when given.
    """
    section = data.get("blocked_names") or {}
    if not isinstance(section, Mapping):
        raise ConfigError("'blocked_names' must be a mapping")
    rules_file = section.get("blocked_names_file")
    if not rules_file:
        raise ConfigError("'blocked_names.blocked_names_file' is required")

    def resolve(p: str | None) -> str | None:
        if p is None or base_dir is None:
            return p
        return str(base_dir / p)

    return BlockNameConfig(
        blocked_names_file=resolve(str(rules_file)),
        log_file=resolve(section.get("log_file") or None),
        log_format=str(section.get("log_format", "tsv")),
        schedules=parse_schedules(data.get("schedules")),
        enforce_schedules=bool(section.get("enforce_schedules", False)),
    )


def load_config(path: str | Path) -> BlockNameConfig:
    """Load a YAML configuration file."""
    path = Path(path)
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, Mapping):
        raise ConfigError(f"Configuration in {path} must be a mapping")
    return config_from_dict(data, base_dir=path.parent)
