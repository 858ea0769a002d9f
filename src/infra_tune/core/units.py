"""
Unit parsing.

Operators type sizes by hand, such as 16g or 1024m.
These helpers convert them into integer byte or megabyte counts.

None means not configured and converts to 0 so callers can treat it as unset.
"""

from __future__ import annotations

import re
from typing import Any, Dict, Optional

from infra_tune.core.errors import InvalidSizeFormat

_SIZE_RE = re.compile(r"\s*(\d+)\s*(\w?)")

_BYTE_UNITS: Dict[str, int] = {
    "b": 1,
    "k": 1 << 10,
    "m": 1 << 20,
    "g": 1 << 30,
}

_MEGABYTE_UNITS: Dict[str, int] = {
    "m": 1,
    "g": 1 << 10,
}


def _parse(value: Any, default_unit: str, units: Dict[str, int], target: str) -> int:
    if value is None:
        return 0
    text = str(value)
    valid = ", ".join(units)
    match = _SIZE_RE.match(text)
    if match is None:
        raise InvalidSizeFormat(f"Unable to convert {text} to {target}, valid units are: {valid}")
    number = int(match.group(1))
    unit = match.group(2).lower() or default_unit.lower()
    if unit not in units:
        raise InvalidSizeFormat(f"Unable to convert {text} to {target}, valid units are: {valid}")
    return number * units[unit]


def parse_bytes(value: Optional[Any], default_unit: str = "g") -> int:
    """
    Convert a size to bytes.

    Examples:
        16, 16g, 16384m, 16777216k, and 17179869184b all return 17179869184.
    """
    return _parse(value, default_unit, _BYTE_UNITS, "bytes")


def parse_size_mb(value: Optional[Any], default_unit: str = "m") -> int:
    """
    Convert a size to megabytes.

    Examples:
        1g, 1024, and 1024m all return 1024.
    """
    return _parse(value, default_unit, _MEGABYTE_UNITS, "megabytes")
