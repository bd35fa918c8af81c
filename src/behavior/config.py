# ABOUTME: Holds the tunable thresholds and windows used across tracking and analysis.
# ABOUTME: Loads overrides from a YAML config file into a frozen dataclass.

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from datetime import timezone, tzinfo
from pathlib import Path
from typing import Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

from .errors import ConfigError


@dataclass(frozen=True)
class TrackingConfig:
    """Configuration for event retention and metric windows."""

    analysis_window_days: int = 30
    trend_window_days: int = 7
    trend_deadband: float = 0.10
    streak_lookback_days: int = 30
    retention_days: int = 90
    max_events: int = 1000
    mood_trend_window: int = 10
    qualifying_event_types: Tuple[str, ...] = ("quiz_attempt",)
    insight_triggers: Tuple[str, ...] = ("session_end", "quiz_attempt", "mood_log")
    timezone: str = "UTC"
    storage_dir: Optional[str] = None

    @property
    def tzinfo(self) -> tzinfo:
        if self.timezone.upper() == "UTC":
            return timezone.utc
        try:
            return ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ConfigError(f"Unknown timezone '{self.timezone}'.") from exc


def load_config(config_path: Optional[Path]) -> TrackingConfig:
    """
    Build a TrackingConfig from a YAML file.

    The file may hold the settings at the top level or under a ``tracking``
    section. A missing path yields the defaults.
    """

    if config_path is None or not Path(config_path).exists():
        return TrackingConfig()

    try:
        with open(config_path, encoding="utf-8") as f:
            cfg = yaml.safe_load(f) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Could not parse config at {config_path}: {exc}") from exc

    if not isinstance(cfg, dict):
        raise ConfigError(f"Config at {config_path} must be a mapping.")
    section = cfg.get("tracking", cfg)
    if not isinstance(section, dict):
        raise ConfigError("The 'tracking' section must be a mapping.")

    known = {f.name for f in fields(TrackingConfig)}
    unknown = sorted(set(section) - known)
    if unknown:
        raise ConfigError(f"Unknown tracking settings: {', '.join(unknown)}.")

    overrides = dict(section)
    for key in ("qualifying_event_types", "insight_triggers"):
        if key in overrides:
            overrides[key] = tuple(overrides[key])

    config = replace(TrackingConfig(), **overrides)
    # Validate eagerly so a bad timezone fails at load time.
    config.tzinfo
    return config
