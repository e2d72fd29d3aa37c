"""
Normalization of contact values into lookup keys
Stored values and incoming requests go through the same functions, so an
equality match in the database is a match on the normalized value.
"""

import re
from typing import Optional, Union

_NON_DIGITS = re.compile(r"\D")

LOCK_KEY_SEPARATOR = "|"


def normalize_email(email: Optional[str]) -> Optional[str]:
    """Trim and lowercase an email; empty input yields None"""
    if not email:
        return None
    email = email.strip().lower()
    return email or None


def normalize_phone(phone: Optional[Union[str, int, float]]) -> Optional[str]:
    """
    Strip every non-digit character from a phone number

    Numbers are accepted as well as strings. No country code inference or
    length validation is done; the digit string is the lookup key.
    """
    if phone is None or isinstance(phone, bool):
        return None
    if isinstance(phone, float) and phone.is_integer():
        phone = int(phone)
    digits = _NON_DIGITS.sub("", str(phone))
    return digits or None


def build_lock_key(email: Optional[str], phone: Optional[str]) -> str:
    """Fingerprint of a normalized (email, phone) pair used to serialize requests"""
    return f"{email or ''}{LOCK_KEY_SEPARATOR}{phone or ''}"
