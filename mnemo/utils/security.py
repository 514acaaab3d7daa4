"""
Input helpers for mobile verification.

Parses international phone numbers and generates verification codes.
"""

import re
import secrets
from typing import Tuple

PHONE_PATTERN = re.compile(r"^\+(\d{1,5})(\d+)$")


def parse_phone_number(mobile_number: str) -> Tuple[str, str]:
    """
    Split an international number into country code and subscriber number.

    Args:
        mobile_number: Number in the form +<country code><digits>

    Returns:
        Tuple[str, str]: ("+<country code>", "<digits>")

    Raises:
        ValueError: If the number does not match the expected format

    Example:
        >>> parse_phone_number("+15551234567")
        ('+15551', '234567')
    """
    match = PHONE_PATTERN.match(mobile_number.strip() if mobile_number else "")
    if not match:
        raise ValueError(
            "Invalid phone number format. Please include country code (e.g., +1234567890)"
        )
    return f"+{match.group(1)}", match.group(2)


def generate_verification_code() -> str:
    """Six-digit numeric code, 100000-999999."""
    return str(100000 + secrets.randbelow(900000))
