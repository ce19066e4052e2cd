"""
Configuration loading for procman.
"""

import math
import os
from collections.abc import Mapping
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

import yaml

from procman.models import FilterCriterion, FilterKind, SortCriterion
from procman.state import DEFAULT_PAUSE_QUANTUM, DEFAULT_UPDATE_INTERVAL
from procman.view import DEFAULT_DISPLAY_LIMIT, parse_threshold

CONFIG_ENV_VAR = "PROCMAN_CONFIG"


@dataclass(slots=True, frozen=True)
class MonitorConfig:
    """Settings for the monitor, the display and logging."""

    update_interval: int = DEFAULT_UPDATE_INTERVAL
    pause_quantum: float = DEFAULT_PAUSE_QUANTUM
    display_limit: int = DEFAULT_DISPLAY_LIMIT
    sort_criterion: str = SortCriterion.CPU.value
    filter_kind: str = FilterKind.NONE.value
    filter_value: str = ""
    autostart: bool = True
    log_file: str | None = None
    log_level: str = "INFO"

    def with_overrides(self, **overrides: Any) -> "MonitorConfig":
        """Return a copy with every non-None override applied."""
        changes = {key: value for key, value in overrides.items() if value is not None}
        return replace(self, **changes).validated()

    def validated(self) -> "MonitorConfig":
        """
        Check value ranges.

        Raises:
            ValueError: Naming the offending key.
        """
        for key in ("update_interval", "display_limit"):
            value = getattr(self, key)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"{key} must be an integer, got {value!r}")
            if value <= 0:
                raise ValueError(f"{key} must be positive, got {value}")
        quantum = self.pause_quantum
        if isinstance(quantum, bool) or not isinstance(quantum, (int, float)):
            raise ValueError(f"pause_quantum must be a number of seconds, got {quantum!r}")
        if not math.isfinite(quantum) or quantum <= 0:
            raise ValueError(f"pause_quantum must be positive, got {quantum}")
        self.sort()
        self.filter()
        return self

    def sort(self) -> SortCriterion:
        try:
            return SortCriterion(self.sort_criterion)
        except ValueError:
            raise ValueError(f"sort must be 'cpu' or 'memory', got {self.sort_criterion!r}") from None

    def filter(self) -> FilterCriterion:
        try:
            kind = FilterKind(self.filter_kind)
        except ValueError:
            raise ValueError(
                f"filter.kind must be one of none, user, cpu, memory, got {self.filter_kind!r}"
            ) from None
        value = str(self.filter_value)
        if kind in (FilterKind.CPU, FilterKind.MEMORY):
            try:
                parse_threshold(value)
            except ValueError:
                raise ValueError(f"filter.value must be numeric for kind {kind.value!r}, got {value!r}") from None
        elif kind is FilterKind.USER and not value:
            raise ValueError("filter.value must name a user for kind 'user'")
        return FilterCriterion(kind, value)


def _from_mapping(data: Mapping[str, Any]) -> MonitorConfig:
    monitor_cfg = data.get("monitor") or {}
    logging_cfg = data.get("logging") or {}
    if not isinstance(monitor_cfg, Mapping) or not isinstance(logging_cfg, Mapping):
        raise ValueError("'monitor' and 'logging' sections must be mappings")

    filter_cfg = monitor_cfg.get("filter") or {}
    if not isinstance(filter_cfg, Mapping):
        raise ValueError("monitor.filter must be a mapping with 'kind' and 'value'")

    defaults = MonitorConfig()
    log_file = logging_cfg.get("file", defaults.log_file)
    config = MonitorConfig(
        update_interval=monitor_cfg.get("update_interval", defaults.update_interval),
        pause_quantum=monitor_cfg.get("pause_quantum", defaults.pause_quantum),
        display_limit=monitor_cfg.get("display_limit", defaults.display_limit),
        sort_criterion=str(monitor_cfg.get("sort", defaults.sort_criterion)),
        filter_kind=str(filter_cfg.get("kind", defaults.filter_kind)),
        filter_value=str(filter_cfg.get("value", defaults.filter_value)),
        autostart=bool(monitor_cfg.get("autostart", defaults.autostart)),
        log_file=os.fspath(log_file) if log_file else None,
        log_level=str(logging_cfg.get("level", defaults.log_level)),
    )
    return config.validated()


def load_config(path: os.PathLike[str] | str | None = None) -> MonitorConfig:
    """
    Load the monitor configuration.

    Parameters
    ----------
    path:
        YAML file to read. Falls back to ``$PROCMAN_CONFIG``; when neither is
        given the defaults are returned.

    Raises
    ------
    FileNotFoundError
        If an explicitly named file does not exist.
    ValueError
        If the file holds malformed values.
    """
    path = path or os.environ.get(CONFIG_ENV_VAR)
    if not path:
        return MonitorConfig()

    resolved = Path(path)
    if not resolved.exists():
        raise FileNotFoundError(f"Configuration file '{resolved}' does not exist.")

    with resolved.open("r", encoding="utf-8") as handle:
        try:
            data = yaml.safe_load(handle) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Configuration file '{resolved}' is not valid YAML: {exc}") from exc

    if not isinstance(data, Mapping):
        raise ValueError(f"Configuration file '{resolved}' must contain a mapping")
    return _from_mapping(data)
