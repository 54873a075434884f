"""Runtime configuration helpers for environment-driven settings."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Final, Tuple

from logic.placement import FLEET_SIZES


logger = logging.getLogger(__name__)


def env_flag(name: str, *, default: bool = False) -> bool:
    """Return a boolean flag from environment variables.

    The helper treats common truthy values (``1``, ``true``, ``yes``, ``on``)
    as ``True`` and common falsy ones (``0``, ``false``, ``no``, ``off``) as
    ``False``.  If the variable is unset or contains an unrecognised value, the
    provided ``default`` is used.
    """
    value = os.getenv(name)
    if value is None:
        return default

    normalised = value.strip().lower()
    if normalised in {"1", "true", "yes", "on"}:
        return True
    if normalised in {"0", "false", "no", "off"}:
        return False
    return default


def env_int(name: str, *, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning("Invalid integer for %s: %s", name, value)
        return default


def env_float(name: str, *, default: float) -> float:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError:
        logger.warning("Invalid number for %s: %s", name, value)
        return default


def env_positive_float(name: str, *, default: float) -> float:
    value = env_float(name, default=default)
    if value <= 0:
        logger.warning("%s must be positive, got %s; using %s", name, value, default)
        return default
    return value


def env_sizes(name: str, *, default: Tuple[int, ...]) -> Tuple[int, ...]:
    """Parse a comma separated list of ship sizes such as ``5,4,4,3``."""
    value = os.getenv(name)
    if value is None or not value.strip():
        return tuple(default)
    try:
        sizes = tuple(int(part) for part in value.split(",") if part.strip())
    except ValueError:
        logger.warning("Invalid ship sizes for %s: %s", name, value)
        return tuple(default)
    return sizes or tuple(default)


@dataclass(frozen=True)
class GameSettings:
    """Tunables injected into the dispatcher and its sessions.

    Times are in seconds: the inactivity timer ticks every ``timer_interval``
    and the active player forfeits once ``turn_timeout`` has elapsed without a
    successful shot.
    """

    turn_timeout: float = 60.0
    timer_interval: float = 15.0
    fleet_sizes: Tuple[int, ...] = FLEET_SIZES
    leaderboard_size: int = 10
    reset_timer_on_rejected_hit: bool = False
    inbox_size: int = 100
    inbox_workers: int = 4


def normalize_webhook_base(raw_url: str) -> str:
    """Return the public base URL without trailing slashes or a ``/webhook`` suffix.

    The bot always registers ``<base>/webhook``, so operators may set
    ``WEBHOOK_URL`` either way.
    """
    base = raw_url.strip().rstrip("/")
    if base.endswith("/webhook"):
        base = base[: -len("/webhook")].rstrip("/")
    return base


def load_settings() -> GameSettings:
    return GameSettings(
        turn_timeout=env_positive_float("TURN_TIMEOUT", default=60.0),
        timer_interval=env_positive_float("TIMER_INTERVAL", default=15.0),
        fleet_sizes=env_sizes("FLEET_SIZES", default=FLEET_SIZES),
        leaderboard_size=env_int("LEADERBOARD_SIZE", default=10),
        reset_timer_on_rejected_hit=env_flag("RESET_TIMER_ON_REJECTED_HIT", default=False),
        inbox_size=env_int("INBOX_SIZE", default=100),
        inbox_workers=env_int("INBOX_WORKERS", default=4),
    )


USE_SUPABASE: Final[bool] = env_flag("USE_SUPABASE", default=False)
STATS_FILE_PATH: Final[str] = os.getenv("STATS_FILE_PATH", "stats.json")

__all__ = [
    "GameSettings",
    "STATS_FILE_PATH",
    "USE_SUPABASE",
    "env_flag",
    "env_float",
    "env_int",
    "env_positive_float",
    "env_sizes",
    "load_settings",
    "normalize_webhook_base",
]
