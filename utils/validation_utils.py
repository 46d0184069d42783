"""
utils/validation_utils.py

Purpose: Input validation

- Phone number normalization
- Display name checks
- Input sanitization
"""

import re
from typing import Optional


def normalize_phone_number(phone: str) -> Optional[str]:
    """
    Normalizes a Nigerian mobile number to 0XXXXXXXXXX form.

    Accepts 080..., +234 80..., 234-80-... and similar.

    Args:
        phone: Raw phone number string

    Returns:
        Normalized 11-digit number, or None if it is not a valid mobile number
    """
    if not phone:
        return None

    digits = re.sub(r"[\s\-\(\)\+\.]", "", phone)

    if digits.startswith("234"):
        digits = "0" + digits[3:]
    elif len(digits) == 10 and digits[0] in "789":
        digits = "0" + digits

    if re.match(r"^0[789][01]\d{8}$", digits):
        return digits
    return None


def validate_full_name(name: str) -> bool:
    """
    A name needs at least two letters once trimmed.
    """
    if not name:
        return False
    return len(re.sub(r"[^A-Za-z]", "", name.strip())) >= 2


def sanitize_input(text: str, max_length: int = 120) -> str:
    """
    Trims, collapses whitespace and strips control characters.

    Args:
        text: Raw user input
        max_length: Maximum length kept

    Returns:
        Sanitized string
    """
    if not text:
        return ""
    text = re.sub(r"[\x00-\x1f\x7f]", "", text)
    text = re.sub(r"\s+", " ", text).strip()
    return text[:max_length]
