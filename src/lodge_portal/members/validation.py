"""
Client-side field checks, run before any call reaches the store.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

from lodge_portal.shared.exceptions import ValidationError

FULL_NAME_MIN = 2
FULL_NAME_MAX = 100
POSITION_MAX = 50
PASSWORD_MIN = 6

EMAIL_PATTERN = re.compile(r"^[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}$", re.IGNORECASE)
PHONE_PATTERN = re.compile(r"^[\+]?[0-9\s\-\(\)]{10,}$")


def validate_full_name(full_name: str | None) -> str:
    name = (full_name or "").strip()
    if not name:
        raise ValidationError("Full name is required", field="full_name")
    if len(name) < FULL_NAME_MIN:
        raise ValidationError("Full name must be at least 2 characters", field="full_name")
    if len(name) > FULL_NAME_MAX:
        raise ValidationError("Full name must be less than 100 characters", field="full_name")
    return name


def validate_position(position: str | None) -> str | None:
    if position is None:
        return None
    value = position.strip()
    if len(value) > POSITION_MAX:
        raise ValidationError("Position must be less than 50 characters", field="position")
    return value or None


def validate_contact_email(email: str | None) -> str | None:
    value = (email or "").strip()
    if not value:
        return None
    if not EMAIL_PATTERN.match(value):
        raise ValidationError("Please enter a valid email address", field="contact_email")
    return value


def validate_contact_phone(phone: str | None) -> str | None:
    value = (phone or "").strip()
    if not value:
        return None
    digits = sum(ch.isdigit() for ch in value)
    if not PHONE_PATTERN.match(value) or digits < 10:
        raise ValidationError("Please enter a valid phone number", field="contact_phone")
    return value


_FIELD_VALIDATORS = {
    "full_name": validate_full_name,
    "position": validate_position,
    "contact_email": validate_contact_email,
    "contact_phone": validate_contact_phone,
}


def validate_profile_fields(values: Mapping[str, Any]) -> dict[str, Any]:
    """Validate and normalise whichever known fields are present.

    Returns a copy of ``values`` with the checked fields normalised.
    """
    cleaned = dict(values)
    for field, check in _FIELD_VALIDATORS.items():
        if field in cleaned:
            cleaned[field] = check(cleaned[field])
    return cleaned


def validate_sign_up(email: str, password: str, full_name: str) -> tuple[str, str]:
    """Check sign-up input; returns the stripped email and full name."""
    name = validate_full_name(full_name)
    if not (email or "").strip():
        raise ValidationError("Email is required", field="email")
    if len(password or "") < PASSWORD_MIN:
        raise ValidationError("Password must be at least 6 characters", field="password")
    return email.strip(), name
