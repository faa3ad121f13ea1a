"""Input validation and sanitization utilities."""

import re

# Mobile money numbers: +243 country code or national leading 0, then 9 digits
PHONE_NUMBER_PATTERN = re.compile(r"(\+243|0)[0-9]{9}")

WHITESPACE_PATTERN = re.compile(r"\s+")


def normalize_phone_number(phone_number: str | None) -> str:
    """Remove every whitespace character from a phone number.

    Returns an empty string if input is None.
    """
    if phone_number is None:
        return ""
    return WHITESPACE_PATTERN.sub("", phone_number)


def is_valid_phone_number(phone_number: str) -> bool:
    """
    Check a normalized phone number against the accepted format:
    +243XXXXXXXXX or 0XXXXXXXXX.
    """
    if not phone_number:
        return False
    return PHONE_NUMBER_PATTERN.fullmatch(phone_number) is not None


def mask_phone_number(phone_number: str) -> str:
    """Hide the middle digits of a phone number for log output."""
    if len(phone_number) <= 4:
        return "*" * len(phone_number)
    return phone_number[:2] + "*" * (len(phone_number) - 4) + phone_number[-2:]
