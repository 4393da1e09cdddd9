"""Utility functions for pkghist."""

import re
from datetime import date, timedelta
from typing import Iterator

# -----------------------------------------------------------------------------
# Package Validation Constants
# -----------------------------------------------------------------------------

# npm package name pattern, optionally scoped (@scope/name)
# - Each part must start with an alphanumeric character
# - Can contain alphanumeric, hyphens, underscores, periods, and tildes
# - Legacy packages may contain uppercase letters
_PACKAGE_NAME_PATTERN = re.compile(
    r"^(@[a-zA-Z0-9][a-zA-Z0-9._~-]*/)?[a-zA-Z0-9][a-zA-Z0-9._~-]*$"
)
_MAX_PACKAGE_NAME_LENGTH = 214

# -----------------------------------------------------------------------------
# Sparkline Constants
# -----------------------------------------------------------------------------

# Default width for sparkline charts (number of characters)
SPARKLINE_WIDTH = 14

# Characters used to represent values in sparklines (low to high)
SPARKLINE_CHARS = " _.,:-=+*#"


def validate_package_name(name: str) -> tuple[bool, str]:
    """Validate that a package name follows npm naming conventions.

    The empty name is valid: it refers to the all-packages aggregate.

    Args:
        name: Package name to validate.

    Returns:
        Tuple of (is_valid, error_message). If valid, error_message is empty.
    """
    if name == "":
        return True, ""

    if len(name) > _MAX_PACKAGE_NAME_LENGTH:
        return False, f"Package name exceeds {_MAX_PACKAGE_NAME_LENGTH} characters"

    if not _PACKAGE_NAME_PATTERN.match(name):
        return False, (
            "Package name must start with an alphanumeric character (after an "
            "optional @scope/ prefix) and contain only letters, numbers, "
            "hyphens, underscores, periods, or tildes"
        )

    return True, ""


def parse_day(value: str) -> date:
    """Parse a YYYY-MM-DD string into a date.

    Raises:
        ValueError: If the string is not an ISO calendar date.
    """
    return date.fromisoformat(value.strip())


def iter_days(start: date, end: date) -> Iterator[date]:
    """Yield every calendar day from start to end, inclusive."""
    day = start
    while day <= end:
        yield day
        day += timedelta(days=1)


def day_count(start: date, end: date) -> int:
    """Number of days in the inclusive range [start, end]; 0 if end < start."""
    return max((end - start).days + 1, 0)


def make_sparkline(values: list[int], width: int = SPARKLINE_WIDTH) -> str:
    """Generate an ASCII sparkline from a list of values.

    Args:
        values: List of integer values to visualize.
        width: Number of characters in the sparkline (default: SPARKLINE_WIDTH).

    Returns:
        ASCII string representing the trend of values.
    """
    if not values:
        return " " * width

    values = values[-width:]

    if len(values) < width:
        values = [0] * (width - len(values)) + values

    min_val = min(values)
    max_val = max(values)

    if max_val == min_val:
        mid_idx = len(SPARKLINE_CHARS) // 2
        return SPARKLINE_CHARS[mid_idx] * width

    sparkline = ""
    for v in values:
        idx = int((v - min_val) / (max_val - min_val) * (len(SPARKLINE_CHARS) - 1))
        sparkline += SPARKLINE_CHARS[idx]

    return sparkline
