"""Decimal-hour parsing and HH:MM formatting — pure functions."""

from __future__ import annotations

import math
import re

from chronos import MAX_DECIMAL_HOURS

# Plain decimal floats only: no inf/nan, no digit separators, no units.
_DECIMAL_RE = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?$")


def parse_decimal_hour(text: object) -> float | None:
    """Parse *text* as a simple decimal float, or return ``None``.

    The whole trimmed token must match; ``"1.5h"`` and ``"01:30"`` do not parse.
    """
    if text is None:
        return None
    token = str(text).strip()
    if not token or not _DECIMAL_RE.fullmatch(token):
        return None
    value = float(token)
    if not math.isfinite(value):
        return None
    return value


def looks_like_decimal_hour(text: object) -> bool:
    """Return True if *text* reads as a plausible decimal-hour duration."""
    value = parse_decimal_hour(text)
    if value is None:
        return False
    return 0 <= value < MAX_DECIMAL_HOURS


def decimal_hours_to_clock(value: float) -> str:
    """Render decimal hours as ``HH:MM``.

    Negative and non-finite input renders as ``00:00``. Minutes round half up
    and carry into the hour; hours are not capped at 24.
    """
    if not math.isfinite(value) or value < 0:
        value = 0.0
    hours = int(value)
    minutes = int((value - hours) * 60 + 0.5)
    if minutes >= 60:
        hours += 1
        minutes -= 60
    return f"{hours:02d}:{minutes:02d}"
