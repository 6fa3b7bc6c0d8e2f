"""Duration parsing utilities."""

import re

from freightsync.types import Duration

_DURATION_PATTERN = re.compile(r"^(\d+)(ms|s|m|h|d)$")
_UNITS: dict[str, float] = {
    "ms": 0.001,
    "s": 1.0,
    "m": 60.0,
    "h": 3_600.0,
    "d": 86_400.0,
}


def parse_duration(duration: Duration) -> float:
    """Parse duration string to seconds. Numbers are already seconds."""
    if isinstance(duration, bool):
        raise ValueError(f"Invalid duration: {duration!r}")
    if isinstance(duration, (int, float)):
        if duration < 0:
            raise ValueError(f"Invalid duration: {duration!r}")
        return float(duration)

    match = _DURATION_PATTERN.match(duration)
    if not match:
        raise ValueError(f"Invalid duration: {duration!r}")

    value, unit = match.groups()
    return int(value) * _UNITS[unit]
