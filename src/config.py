"""
Runtime settings for Sprout.

Values come from environment variables; Supabase connection settings live in
src.db.client alongside the client they configure.
"""

import logging
import os
from typing import Optional


GROWTH_REFERENCES = ("sample", "cdc")


def _env_int(name: str, default: Optional[int]) -> Optional[int]:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")


class TrackerSettings:
    """Engine settings read from the environment."""

    def __init__(self):
        self.growth_reference = os.environ.get("SPROUT_GROWTH_REFERENCE", "sample").lower()
        self.roster_poll_seconds = _env_float("SPROUT_ROSTER_POLL_SECONDS", 5.0)
        self.follow_up_horizon_days = _env_int("SPROUT_FOLLOW_UP_HORIZON_DAYS", None)
        self.log_level = os.environ.get("SPROUT_LOG_LEVEL", "INFO").upper()

    def validate(self) -> None:
        """Raise error if any setting is out of range."""
        if self.growth_reference not in GROWTH_REFERENCES:
            raise ValueError(
                f"SPROUT_GROWTH_REFERENCE must be one of {', '.join(GROWTH_REFERENCES)}"
            )
        if self.roster_poll_seconds <= 0:
            raise ValueError("SPROUT_ROSTER_POLL_SECONDS must be positive")
        if self.follow_up_horizon_days is not None and self.follow_up_horizon_days < 0:
            raise ValueError("SPROUT_FOLLOW_UP_HORIZON_DAYS cannot be negative")
        if not isinstance(logging.getLevelName(self.log_level), int):
            raise ValueError(f"Unknown SPROUT_LOG_LEVEL {self.log_level!r}")


_settings: Optional[TrackerSettings] = None


def get_settings() -> TrackerSettings:
    """Get the engine settings (singleton)."""
    global _settings
    if _settings is None:
        settings = TrackerSettings()
        settings.validate()
        _settings = settings
    return _settings


def reset_settings() -> None:
    """Drop the cached settings (useful for testing)."""
    global _settings
    _settings = None
