"""MIA — Lenient numeric parsing for raw platform payloads.

Ad platform APIs send most numbers as strings. Malformed or missing values
parse to 0 rather than raising; there is no validation layer upstream.
"""

import math
from typing import Any

MICROS_PER_UNIT = 1_000_000


def safe_float(value: Any) -> float:
    """Safely convert a value to float."""
    try:
        result = float(value)
    except (TypeError, ValueError):
        return 0.0
    return result if math.isfinite(result) else 0.0


def safe_int(value: Any) -> int:
    """Safely convert a value to int, truncating decimals."""
    return int(safe_float(value))


def micros_to_units(value: Any) -> float:
    """Convert a micros amount (1/1,000,000 of the currency unit) to currency."""
    return safe_int(value) / MICROS_PER_UNIT
