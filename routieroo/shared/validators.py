"""Shared validation utilities"""

import re
from typing import Optional

HEX_COLOR_PATTERN = re.compile(r"^#[0-9A-Fa-f]{6}$")

CALLING_SERVICES = ("phone", "google-voice", "whatsapp", "skype", "facetime")
DISTANCE_UNITS = ("km", "miles")
EVENT_DURATION_MODES = ("stop_only", "include_drive")


def validate_us_phone(phone: Optional[str]) -> Optional[str]:
    """
    Validate and normalize US phone number to E.164 format.

    Args:
        phone: Phone number string in various formats

    Returns:
        Normalized phone number in E.164 format (+1XXXXXXXXXX)

    Raises:
        ValueError: If phone number is invalid
    """
    if not phone:
        return phone

    # Remove all non-digit characters
    digits = re.sub(r"\D", "", phone)

    # Handle +1 prefix
    if digits.startswith("1") and len(digits) == 11:
        digits = digits[1:]

    if len(digits) != 10:
        raise ValueError("Phone number must be 10 digits for US numbers")

    return f"+1{digits}"


def validate_email(email: Optional[str]) -> Optional[str]:
    """
    Validate email format.

    Returns:
        Lowercase email address

    Raises:
        ValueError: If email format is invalid
    """
    if not email:
        return email

    email = email.strip().lower()

    email_pattern = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"

    if not re.match(email_pattern, email):
        raise ValueError("Invalid email format")

    return email


def validate_hex_color(color: Optional[str]) -> Optional[str]:
    """Accept #RRGGBB colors only"""
    if color is None:
        return color
    if not HEX_COLOR_PATTERN.match(color):
        raise ValueError("Color must be a hex code like #3b82f6")
    return color


def validate_choice(value: Optional[str], choices: tuple, field: str) -> Optional[str]:
    if value is None:
        return value
    if value not in choices:
        raise ValueError(f"{field} must be one of: {', '.join(choices)}")
    return value
