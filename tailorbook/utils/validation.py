from __future__ import annotations

import re
from typing import Optional

EMAIL_RE = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')
PHONE_RE = re.compile(r'[0-9]{10}')
PIN_RE = re.compile(r'[0-9]{4}')


def validate_email(email: Optional[str]) -> bool:
    return bool(email) and EMAIL_RE.match(email) is not None


def validate_phone(phone: Optional[str]) -> bool:
    return bool(phone) and PHONE_RE.fullmatch(phone) is not None


def validate_pin(pin: Optional[str]) -> bool:
    return bool(pin) and PIN_RE.fullmatch(pin) is not None


def normalise_phone(raw: Optional[str], default_cc: str = '91') -> Optional[str]:
    """Digits-only phone with a country code, as the WhatsApp API expects."""
    if not raw:
        return None
    digits = ''.join(ch for ch in raw if ch in '0123456789')
    if not digits:
        return None
    if len(digits) == 10:
        return f"{default_cc.lstrip('+')}{digits}"
    return digits
