"""
Input sanitising and form field validation.

Raw terminal input passes through ``clean_input`` before anything else looks
at it; form fields are then checked with ``validate_field``.
"""

from __future__ import annotations
import re
from dataclasses import dataclass
from typing import Any, Mapping, Optional

# Local part, "@", then either a bracketed IPv4 literal or a dotted host
# ending in a TLD of two or more letters.
EMAIL_PATTERN = re.compile(
    r'^(([^<>()\[\]\\.,;:\s@"]+(\.[^<>()\[\]\\.,;:\s@"]+)*)|(".+"))'
    r'@((\[[0-9]{1,3}\.[0-9]{1,3}\.[0-9]{1,3}\.[0-9]{1,3}\])'
    r'|(([a-z\-0-9]+\.)+[a-z]{2,}))$',
    re.IGNORECASE,
)


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating one form field."""

    valid: bool
    message: Optional[str] = None


def clean_input(raw: Any) -> str:
    """
    Sanitise one line of user input.

    Non-string input yields an empty string. Strings are trimmed and every
    ``<`` and ``>`` character is removed.

    Parameters
    ----------
    raw : Any
        Value read from the terminal

    Returns
    -------
    str
        Cleaned text (possibly empty)
    """
    if not isinstance(raw, str):
        return ""
    return raw.replace("<", "").replace(">", "").strip()


def validate_email(value: Any) -> bool:
    """Return True if ``value`` is shaped like an email address (format only)."""
    if not isinstance(value, str):
        return False
    return EMAIL_PATTERN.match(value) is not None


def validate_field(field, value: str, form_data: Mapping[str, str]) -> ValidationResult:
    """
    Validate a collected value against its field definition.

    Checks run in order: required, email format, password confirmation.

    Parameters
    ----------
    field : FormField
        Field definition (``name``, ``label``, ``required``)
    value : str
        Cleaned input for this field
    form_data : Mapping[str, str]
        Answers already collected for earlier fields of the same form

    Returns
    -------
    ValidationResult
        ``valid`` flag plus the user-facing message on failure
    """
    if field.required and not value:
        return ValidationResult(False, f"{field.label} is required!")

    if field.name == "email" and not validate_email(value):
        return ValidationResult(False, "Please enter a valid email address!")

    if field.name == "confirmPassword" and value != form_data.get("password"):
        return ValidationResult(False, "Passwords do not match!")

    return ValidationResult(True)
