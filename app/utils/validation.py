"""Field formatting and validation rules for patient and account forms.

Formatters turn raw keystrokes into the canonical display value. Validators
run against that canonical value and return a human-readable message when the
value is rejected, or None when it is accepted. Everything here is pure.
"""

import re
from collections.abc import Callable, Mapping
from datetime import date

from email_validator import EmailNotValidError
from email_validator import validate_email as check_email_address

NON_DIGITS = re.compile(r"\D")
TAX_ID_PATTERN = re.compile(r"^\d{3}\.\d{3}\.\d{3}-\d{2}$")
PHONE_PATTERN = re.compile(r"^\(\d{2}\) \d{4,5}-\d{4}$")
BIRTH_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

FULL_NAME_MAX_LENGTH = 255
ADDRESS_MAX_LENGTH = 1000
PASSWORD_MIN_LENGTH = 6
# bcrypt only hashes the first 72 bytes
PASSWORD_MAX_BYTES = 72

Formatter = Callable[[str], str]
Validator = Callable[[str], str | None]


def strip_non_digits(value: str) -> str:
    """Remove every character that is not a digit."""
    return NON_DIGITS.sub("", value)


def format_tax_id(value: str) -> str:
    """Format a CPF as 000.000.000-00 once all 11 digits are present.

    Anything other than exactly 11 digits comes back as the bare digits.
    """
    digits = strip_non_digits(value)
    if len(digits) == 11:
        return f"{digits[:3]}.{digits[3:6]}.{digits[6:9]}-{digits[9:]}"
    return digits


def format_phone(value: str) -> str:
    """Format a phone number as (00) 00000-0000 or (00) 0000-0000.

    Anything other than 10 or 11 digits comes back as the bare digits.
    """
    digits = strip_non_digits(value)
    if len(digits) == 11:
        return f"({digits[:2]}) {digits[2:7]}-{digits[7:]}"
    if len(digits) == 10:
        return f"({digits[:2]}) {digits[2:6]}-{digits[6:]}"
    return digits


def validate_full_name(value: str) -> str | None:
    name = value.strip()
    if not name:
        return "Full name is required"
    if len(name) > FULL_NAME_MAX_LENGTH:
        return f"Full name must be at most {FULL_NAME_MAX_LENGTH} characters"
    return None


def validate_birth_date(value: str) -> str | None:
    """Birth date must be a real calendar date; its range is not checked."""
    if not value.strip():
        return "Birth date is required"
    if not BIRTH_DATE_PATTERN.match(value.strip()):
        return "Birth date must be in the format YYYY-MM-DD"
    try:
        date.fromisoformat(value.strip())
    except ValueError:
        return "Birth date must be a valid calendar date"
    return None


def validate_tax_id(value: str) -> str | None:
    tax_id = value.strip()
    if not tax_id:
        return "CPF is required"
    if not TAX_ID_PATTERN.match(tax_id):
        return "CPF must be in the format 000.000.000-00"
    return None


def validate_phone(value: str) -> str | None:
    if value and not PHONE_PATTERN.match(value):
        return "Phone must be in the format (00) 00000-0000"
    return None


def validate_address(value: str) -> str | None:
    if len(value) > ADDRESS_MAX_LENGTH:
        return f"Address must be at most {ADDRESS_MAX_LENGTH} characters"
    return None


def validate_email(value: str) -> str | None:
    """Syntax check only; deliverability is never looked up."""
    try:
        check_email_address(value.strip(), check_deliverability=False)
    except EmailNotValidError:
        return "Invalid email"
    return None


def validate_password(value: str) -> str | None:
    if len(value) < PASSWORD_MIN_LENGTH:
        return f"Password must be at least {PASSWORD_MIN_LENGTH} characters"
    if len(value.encode("utf-8")) > PASSWORD_MAX_BYTES:
        return f"Password must be at most {PASSWORD_MAX_BYTES} bytes"
    return None


def validate_display_name(value: str) -> str | None:
    if not value.strip():
        return "Full name is required"
    return None


# Field order matches the patient form, so the first error is the topmost field
PATIENT_VALIDATORS: dict[str, Validator] = {
    "full_name": validate_full_name,
    "birth_date": validate_birth_date,
    "tax_id": validate_tax_id,
    "phone": validate_phone,
    "address": validate_address,
}

PATIENT_FORMATTERS: dict[str, Formatter] = {
    "tax_id": format_tax_id,
    "phone": format_phone,
}


def format_field(field: str, value: str) -> str:
    """Apply the field's formatter, if it has one."""
    formatter = PATIENT_FORMATTERS.get(field)
    return formatter(value) if formatter else value


def validate_patient_fields(values: Mapping[str, str]) -> dict[str, str]:
    """Validate every patient field and return the failures in form order."""
    errors: dict[str, str] = {}
    for field, validator in PATIENT_VALIDATORS.items():
        message = validator(values.get(field, ""))
        if message:
            errors[field] = message
    return errors
