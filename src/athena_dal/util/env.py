"""Typed environment variable helpers.

Unset or blank variables resolve to the supplied default. Values that are set but
cannot be parsed raise ``ValueError`` so misconfiguration fails loudly instead of
silently falling back.

Example:
    >>> os.environ["ATHENA_POLL_INTERVAL_SECONDS"] = "0.5"
    >>> get_env_float("ATHENA_POLL_INTERVAL_SECONDS", 1.0)
    0.5
"""

import os
from typing import Optional

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def get_env_str(name: str, default: Optional[str] = None) -> Optional[str]:
    """Return a stripped environment value, or default when unset/blank."""
    raw = os.getenv(name)
    if raw is None:
        return default
    value = raw.strip()
    return value if value else default


def get_env_int(name: str, default: Optional[int] = None) -> Optional[int]:
    """Return an integer environment value."""
    raw = get_env_str(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"Invalid integer for {name}: '{raw}'") from exc


def get_env_float(name: str, default: Optional[float] = None) -> Optional[float]:
    """Return a float environment value."""
    raw = get_env_str(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"Invalid number for {name}: '{raw}'") from exc


def get_env_bool(name: str, default: Optional[bool] = None) -> Optional[bool]:
    """Return a boolean environment value (true/false, 1/0, yes/no, on/off)."""
    raw = get_env_str(name)
    if raw is None:
        return default
    lowered = raw.lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"Invalid boolean for {name}: '{raw}'")
