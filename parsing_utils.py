"""Formatting and parsing of the integer "thou" quantities used by the engine.

Rates are stored as thousandths of an item per minute (speedThou) and clock
speeds as thousandths of a percent (clockSpeedThou, 100_00_000 is 100%).
"""

import math
import re

THOU = 1000
CLOCK_SPEED_PERCENT_SCALE = 100_000

_THOUSANDS_SEPARATOR = re.compile(r"\B(?=(\d{3})+(?!\d))")


def _strip_trailing_zeros(text: str) -> str:
    """Drop trailing zeros, and the decimal point if nothing is left after it."""
    if "." not in text:
        return text
    return text.rstrip("0").rstrip(".")


def _parse_number(text: str) -> float:
    """Convert user text like "1,234.5" to float.

    Precondition:
        text is a non-None string

    Postcondition:
        returns float value with thousands separators ignored

    Raises:
        ValueError: if text is not a number
    """
    cleaned = text.replace(",", "").strip()
    try:
        return float(cleaned)
    except ValueError as exc:
        raise ValueError(f"Invalid number '{text}'. Must be a number.") from exc


def speed_thou_to_string(speed_thou: int, add_comma: bool = True) -> str:
    """Render a thou rate as items per minute.

    Precondition:
        speed_thou is a number (non-integers are floored)

    Postcondition:
        returns the rate divided by 1000 with at most 3 decimals
        trailing zeros are removed
        integer part is comma separated if add_comma

    Args:
        speed_thou: rate in thousandths of an item per minute
        add_comma: group the integer part in thousands

    Returns:
        display string, e.g. 12345678 -> "12,345.678"
    """
    speed_thou = math.floor(speed_thou)
    sign = "-" if speed_thou < 0 else ""
    whole, fraction = divmod(abs(speed_thou), THOU)
    whole_str = str(whole)
    if add_comma:
        whole_str = _THOUSANDS_SEPARATOR.sub(",", whole_str)
    return sign + _strip_trailing_zeros(f"{whole_str}.{fraction:03d}")


def parse_speed_thou(speed_str: str) -> int:
    """Parse an items-per-minute string into a thou rate.

    Args:
        speed_str: string like "30" or "1,234.5"

    Returns:
        floor of the value times 1000

    Raises:
        ValueError: if speed_str is not a number
    """
    return math.floor(_parse_number(speed_str) * THOU)


def clock_speed_thou_to_percent_string(clock_speed_thou: int) -> str:
    """Render a clock speed as a percent string, e.g. 100_00_000 -> "100"."""
    whole, fraction = divmod(clock_speed_thou, CLOCK_SPEED_PERCENT_SCALE)
    return _strip_trailing_zeros(f"{whole}.{fraction // 100:03d}")


def parse_clock_speed_thou_from_percent_string(clock_speed_str: str) -> int:
    """Parse a percent string such as "250" or "37.5" into clockSpeedThou.

    Raises:
        ValueError: if clock_speed_str is not a number
    """
    return math.floor(_parse_number(clock_speed_str) * CLOCK_SPEED_PERCENT_SCALE)
