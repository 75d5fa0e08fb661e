"""
Pipeline configuration.

Values come from environment variables (optionally loaded from a .env file)
and fall back to the reference defaults. Command-line flags override both.
"""

import os
from typing import Any, Callable, Dict, Optional

from dotenv import load_dotenv

from .clustering.aggregation import DEFAULT_MIN_EVENTS
from .clustering.distance import DEFAULT_MAX_PAIRS, DEFAULT_STORM_SPEED_MS
from .clustering.linkage import CLUSTER_METHODS, DEFAULT_CUT_THRESHOLD
from .events.event_store import DEFAULT_DAY_OFFSET_HOURS

# Load environment variables from .env file
load_dotenv()

# setting name -> (environment variable, parser, default)
SETTINGS_SPEC = {
    "storm_speed": ("BIGDAYS_STORM_SPEED_MS", float, DEFAULT_STORM_SPEED_MS),
    "threshold": ("BIGDAYS_CUT_THRESHOLD", float, DEFAULT_CUT_THRESHOLD),
    "min_events": ("BIGDAYS_MIN_EVENTS", int, DEFAULT_MIN_EVENTS),
    "max_pairs": ("BIGDAYS_MAX_PAIRS", int, DEFAULT_MAX_PAIRS),
    "n_jobs": ("BIGDAYS_N_JOBS", int, 1),
    "day_offset_hours": ("BIGDAYS_DAY_OFFSET_HOURS", int, DEFAULT_DAY_OFFSET_HOURS),
    "time_zone": ("BIGDAYS_TIME_ZONE", str, None),
    "method": ("BIGDAYS_CLUSTER_METHOD", str, "linkage"),
}


def _parse(env_var: str, parser: Callable[[str], Any], raw: str) -> Any:
    try:
        return parser(raw.strip())
    except ValueError:
        raise ValueError(f"{env_var} has an invalid value: {raw!r}") from None


def load_settings(overrides: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Resolve pipeline settings.

    Args:
        overrides: Values that take precedence over the environment (None entries are ignored)

    Returns:
        Dictionary of settings keyed by name

    Raises:
        ValueError: If a variable is malformed or a value is out of range
    """
    settings = {}
    for name, (env_var, parser, default) in SETTINGS_SPEC.items():
        raw = os.getenv(env_var)
        if raw is None or raw.strip() == "":
            settings[name] = default
        else:
            settings[name] = _parse(env_var, parser, raw)

    for name, value in (overrides or {}).items():
        if name not in SETTINGS_SPEC:
            raise ValueError(f"Unknown setting: {name}")
        if value is not None:
            settings[name] = value

    if not settings["storm_speed"] > 0:
        raise ValueError(f"storm_speed must be positive, got {settings['storm_speed']}")
    if settings["threshold"] < 0:
        raise ValueError(f"threshold must be non-negative, got {settings['threshold']}")
    if settings["min_events"] < 1:
        raise ValueError(f"min_events must be at least 1, got {settings['min_events']}")
    if settings["max_pairs"] < 0:
        raise ValueError(f"max_pairs must be non-negative, got {settings['max_pairs']}")
    if settings["n_jobs"] < 1:
        raise ValueError(f"n_jobs must be at least 1, got {settings['n_jobs']}")
    if settings["method"] not in CLUSTER_METHODS:
        raise ValueError(
            f"Unsupported clustering method: {settings['method']}. Available: {CLUSTER_METHODS}"
        )

    return settings
