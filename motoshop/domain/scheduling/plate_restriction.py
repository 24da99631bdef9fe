"""
License plate circulation restriction ("pico y placa")

The last digit of the plate determines the one weekday on which the vehicle
may not circulate. Weekends are never restricted.
"""

from datetime import date
from typing import Optional

from ...shared.validators import normalize_plate

# weekday() -> restricted last digits
RESTRICTED_DIGITS_BY_WEEKDAY: dict[int, frozenset[str]] = {
    0: frozenset({"1", "2"}),  # Monday
    1: frozenset({"3", "4"}),  # Tuesday
    2: frozenset({"5", "6"}),  # Wednesday
    3: frozenset({"7", "8"}),  # Thursday
    4: frozenset({"9", "0"}),  # Friday
}

WEEKDAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


def last_digit(plate: Optional[str]) -> Optional[str]:
    """Last character of the normalized plate when it is a digit"""
    normalized = normalize_plate(plate)
    if not normalized or not normalized[-1].isdigit():
        return None
    return normalized[-1]


def is_plate_restricted(plate: Optional[str], on_date: date) -> bool:
    digit = last_digit(plate)
    if digit is None:
        return False
    return digit in RESTRICTED_DIGITS_BY_WEEKDAY.get(on_date.weekday(), frozenset())


def restricted_weekday(digit: str) -> Optional[int]:
    """Weekday (Monday=0) on which plates ending in `digit` are restricted"""
    for weekday, digits in RESTRICTED_DIGITS_BY_WEEKDAY.items():
        if digit in digits:
            return weekday
    return None
