"""Shared validation utilities"""

import re
from typing import Optional

from ..config import DEFAULT_COUNTRY_CODE


def normalize_plate(plate: Optional[str]) -> str:
    """Trim and upper-case a license plate. Blank plates normalize to an empty string."""
    if not plate:
        return ""
    return plate.strip().upper()


def normalize_brand(brand: Optional[str]) -> str:
    """Brand names compare trimmed and case-folded"""
    if not brand:
        return ""
    return brand.strip().casefold()


def validate_phone(phone: Optional[str], country_code: str = DEFAULT_COUNTRY_CODE) -> Optional[str]:
    """
    Validate and normalize a phone number to E.164 format.

    Local numbers get the default country code. Numbers that already carry a
    leading "+" keep their own country code.

    Args:
        phone: Phone number string in various formats
        country_code: Calling code applied to local numbers

    Returns:
        Normalized phone number in E.164 format (+XXXXXXXXXXX)

    Raises:
        ValueError: If phone number is invalid
    """
    if not phone:
        return phone

    phone = phone.strip()
    has_plus = phone.startswith("+")

    # Remove all non-digit characters
    digits = re.sub(r"\D", "", phone)

    if not has_plus:
        if digits.startswith("00"):
            digits = digits[2:]
        elif not digits.startswith(country_code) or len(digits) <= 10:
            digits = f"{country_code}{digits}"

    # E.164 allows at most 15 digits
    if len(digits) < 8 or len(digits) > 15:
        raise ValueError("Phone number must have between 8 and 15 digits")

    return f"+{digits}"


def validate_non_blank(value: Optional[str], field_name: str) -> str:
    """Return the trimmed value, raising when nothing is left"""
    if value is None or not value.strip():
        raise ValueError(f"{field_name} is required")
    return value.strip()
