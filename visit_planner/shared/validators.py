"""Shared validation utilities"""

import re
from datetime import date, datetime
from typing import Any, Optional

POSTAL_CODE_LENGTH = 8
DATE_PATTERN = re.compile(r"^[0-9]{4}-[0-9]{2}-[0-9]{2}$")
NON_DIGITS = re.compile(r"[^0-9]")


def normalize_postal_code(raw: Optional[str]) -> str:
    """Strip every non-digit character from a postal code (CEP)

    Only ASCII digits are kept, so fullwidth or other script digits never
    reach the canonical form.
    """
    if not raw:
        return ""
    return NON_DIGITS.sub("", str(raw))


def is_valid_postal_code(canonical: Optional[str]) -> bool:
    """A canonical postal code has exactly 8 ASCII digits"""
    if not canonical:
        return False
    return re.fullmatch(rf"[0-9]{{{POSTAL_CODE_LENGTH}}}", canonical) is not None


def mask_postal_code(raw: Optional[str]) -> str:
    """
    Apply the ``00000-000`` input mask.

    Extra digits beyond the eighth are dropped; the hyphen only appears once
    the sixth digit has been typed.
    """
    digits = normalize_postal_code(raw)[:POSTAL_CODE_LENGTH]
    if len(digits) > 5:
        return f"{digits[:5]}-{digits[5:]}"
    return digits


def is_complete_for_lookup(raw: Optional[str]) -> bool:
    return len(normalize_postal_code(raw)) == POSTAL_CODE_LENGTH


def parse_iso_date(value: Any) -> Optional[date]:
    """
    Parse a ``YYYY-MM-DD`` string into a date.

    Returns None when the value does not have that shape or is not a real
    calendar day (e.g. ``2025-02-30``).
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not DATE_PATTERN.match(value):
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def is_blank(value: Any) -> bool:
    """True for None, empty strings/containers, zero and False"""
    if isinstance(value, str):
        return value.strip() == ""
    return not value
