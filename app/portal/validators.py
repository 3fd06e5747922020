"""
Field validators.

Each check returns a ``ValidationResult``; ``ensure()`` raises ``FieldInvalid``
for the first failing result so a request aborts on the first bad field.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from typing import Any
from urllib.parse import urlparse

from app.portal.errors import FieldInvalid

NAME_MAX_LENGTH = 160
NOTES_MAX_LENGTH = 200

_NAME_CHARS_RE = re.compile(r"^[A-Za-z0-9\s\-().,]+$")
_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_GST_RE = re.compile(r"^[0-9]{2}[A-Z]{5}[0-9]{4}[A-Z][1-9A-Z]Z[0-9A-Z]$")
_PAN_RE = re.compile(r"^[A-Z]{5}[0-9]{4}[A-Z]$")
_IFSC_RE = re.compile(r"^[A-Z]{4}0[A-Z0-9]{6}$")
_IEC_RE = re.compile(r"^[A-Z]{3}[A-Z0-9]{7}$")

VALID_UNITS = (
    "m", "meter", "meters", "metre", "metres",
    "kg", "kilogram", "kilograms",
    "litre", "litres", "liter", "liters", "l",
    "nos", "numbers",
    "sqm", "sq.m", "square meter", "square meters",
    "rm", "running meter", "running meters",
    "unit", "units", "piece", "pieces", "pc", "pcs",
)


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    message: str = ""


OK = ValidationResult(True)


def _fail(message: str) -> ValidationResult:
    return ValidationResult(False, message)


def ensure(result: ValidationResult, prefix: str = "") -> None:
    if not result.valid:
        raise FieldInvalid(f"{prefix}{result.message}")


def _digits(value: Any) -> str:
    return re.sub(r"\D", "", str(value or ""))


def parse_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str) and value.strip():
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


# ---------- required-field validators ----------
def validate_name(value: Any, field_name: str = "Name", max_length: int = NAME_MAX_LENGTH) -> ValidationResult:
    if not value or not isinstance(value, str):
        return _fail(f"{field_name} is required")
    trimmed = value.strip()
    if not trimmed:
        return _fail(f"{field_name} cannot be empty")
    if len(trimmed) > max_length:
        return _fail(f"{field_name} must be {max_length} characters or less")
    if not _NAME_CHARS_RE.match(trimmed):
        return _fail(f"{field_name} can only contain letters, numbers, spaces, and limited punctuation (- ( ) . ,)")
    return OK


def validate_location(value: Any) -> ValidationResult:
    if not value or not isinstance(value, str):
        return _fail("Location is required")
    if not value.strip():
        return _fail("Location cannot be empty")
    return OK


def validate_phone(value: Any) -> ValidationResult:
    if not value:
        return _fail("Phone number is required")
    if len(_digits(value)) != 10:
        return _fail("Phone number must be exactly 10 digits")
    return OK


def validate_numeric(
    value: Any,
    field_name: str = "Value",
    allow_zero: bool = False,
    minimum: float | None = None,
    allow_negative: bool = False,
) -> ValidationResult:
    num = parse_number(value)
    if num is None:
        return _fail(f"{field_name} must be a valid number")
    if not allow_zero and num == 0:
        return _fail(f"{field_name} cannot be zero")
    if minimum is not None and num < minimum:
        return _fail(f"{field_name} must be at least {minimum:g}")
    if num < 0 and not allow_negative:
        return _fail(f"{field_name} cannot be negative")
    return OK


def validate_unit(value: Any) -> ValidationResult:
    if not value or not isinstance(value, str):
        return _fail("Unit is required")
    if value.strip().lower() not in VALID_UNITS:
        return _fail(f"Invalid unit. Allowed units: {', '.join(VALID_UNITS)}")
    return OK


def validate_notes(value: Any, max_length: int = NOTES_MAX_LENGTH) -> ValidationResult:
    if not value:
        return OK
    if not isinstance(value, str):
        return _fail("Notes must be text")
    if len(value) > max_length:
        return _fail(f"Notes must be {max_length} characters or less")
    if not _NAME_CHARS_RE.match(value):
        return _fail("Notes can only contain letters, numbers, spaces, and limited punctuation")
    return OK


def validate_required(value: Any, field_name: str = "This field") -> ValidationResult:
    if not isinstance(value, str) or not value.strip():
        return _fail(f"{field_name} is required")
    return OK


# ---------- optional directory fields (blank is valid) ----------
def validate_optional_phone(value: Any, field_name: str = "Phone number") -> ValidationResult:
    if not value:
        return OK
    n = len(_digits(value))
    if n < 10 or n > 15:
        return _fail(f"{field_name} must be 10-15 digits")
    return OK


def validate_email(value: Any) -> ValidationResult:
    if not value:
        return OK
    if not _EMAIL_RE.match(str(value)):
        return _fail("Please enter a valid email address")
    return OK


def validate_pincode(value: Any) -> ValidationResult:
    if not value:
        return OK
    if len(_digits(value)) != 6:
        return _fail("PIN code must be exactly 6 digits")
    return OK


def validate_gst(value: Any) -> ValidationResult:
    if not value:
        return OK
    if not _GST_RE.match(str(value).upper()):
        return _fail("Invalid GST format (e.g., 22AAAAA0000A1Z5)")
    return OK


def validate_pan(value: Any) -> ValidationResult:
    if not value:
        return OK
    if not _PAN_RE.match(str(value).upper()):
        return _fail("Invalid PAN format (e.g., ABCDE1234F)")
    return OK


def validate_ifsc(value: Any) -> ValidationResult:
    if not value:
        return OK
    if not _IFSC_RE.match(str(value).upper()):
        return _fail("Invalid IFSC format (e.g., HDFC0001234)")
    return OK


def validate_iec(value: Any) -> ValidationResult:
    if not value:
        return OK
    raw = str(value)
    if len(raw) != 10:
        return _fail("IEC code must be exactly 10 characters")
    if not _IEC_RE.match(raw.upper()):
        return _fail("Invalid IEC format (e.g., AABCT1234A)")
    return OK


def validate_website(value: Any) -> ValidationResult:
    if not value:
        return OK
    raw = str(value).strip()
    url = raw if raw.startswith("http") else f"https://{raw}"
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc or " " in raw:
        return _fail("Please enter a valid website URL")
    return OK


def validate_year(value: Any) -> ValidationResult:
    if not value:
        return OK
    try:
        year = int(str(value).strip())
    except ValueError:
        year = None
    current = date.today().year
    if year is None or year < 1900 or year > current:
        return _fail(f"Year must be between 1900 and {current}")
    return OK
