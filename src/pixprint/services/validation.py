"""Sign-up form validation and password strength scoring."""

import re
import string

from pixprint.domain.errors import FieldViolation, ValidationField, ValidationRule
from pixprint.domain.models import SignUpForm

PASSWORD_SYMBOLS = '!@#$%^&*(),.?":{}|<>'
MIN_NAME_LENGTH = 2
MIN_ADDRESS_LENGTH = 5
MIN_PASSWORD_LENGTH = 6
STRONG_PASSWORD_LENGTH = 8
MIN_PASSWORD_STRENGTH = 2

_NAME_PATTERN = re.compile(r"[A-Za-z\s'\-]+")
_EMAIL_PATTERN = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")


def password_strength(password: str) -> int:
    """Return how many strength criteria the password meets (0-4)."""
    criteria = (
        len(password) >= STRONG_PASSWORD_LENGTH,
        any(char in string.digits for char in password),
        any(char in string.ascii_uppercase for char in password),
        any(char in PASSWORD_SYMBOLS for char in password),
    )
    return sum(criteria)


def strength_label(score: int) -> str:
    """Return the meter label for a strength score."""
    if score >= 4:
        return "strong"
    if score >= MIN_PASSWORD_STRENGTH:
        return "medium"
    return "weak"


def validate_name(value: str, field: ValidationField) -> FieldViolation | None:
    """Check a first or last name."""
    cleaned = value.strip()
    if not cleaned:
        return FieldViolation(field, ValidationRule.REQUIRED)
    if len(cleaned) < MIN_NAME_LENGTH:
        return FieldViolation(field, ValidationRule.TOO_SHORT)
    if not _NAME_PATTERN.fullmatch(cleaned):
        return FieldViolation(field, ValidationRule.INVALID_CHARACTERS)
    return None


def validate_email(value: str) -> FieldViolation | None:
    """Check the email has a local@domain.tld shape."""
    cleaned = value.strip()
    if not cleaned:
        return FieldViolation(ValidationField.EMAIL, ValidationRule.REQUIRED)
    if not _EMAIL_PATTERN.fullmatch(cleaned):
        return FieldViolation(ValidationField.EMAIL, ValidationRule.INVALID_FORMAT)
    return None


def validate_address(value: str) -> FieldViolation | None:
    """Check the postal address is present and long enough."""
    cleaned = value.strip()
    if not cleaned:
        return FieldViolation(ValidationField.ADDRESS, ValidationRule.REQUIRED)
    if len(cleaned) < MIN_ADDRESS_LENGTH:
        return FieldViolation(ValidationField.ADDRESS, ValidationRule.TOO_SHORT)
    return None


def validate_password(value: str) -> FieldViolation | None:
    """Check password length and strength."""
    if not value:
        return FieldViolation(ValidationField.PASSWORD, ValidationRule.REQUIRED)
    if len(value) < MIN_PASSWORD_LENGTH:
        return FieldViolation(ValidationField.PASSWORD, ValidationRule.TOO_SHORT)
    if password_strength(value) < MIN_PASSWORD_STRENGTH:
        return FieldViolation(ValidationField.PASSWORD, ValidationRule.WEAK)
    return None


def validate_confirmation(password: str, confirmation: str) -> FieldViolation | None:
    """Check the confirmation repeats the password exactly."""
    if not confirmation:
        return FieldViolation(
            ValidationField.CONFIRM_PASSWORD, ValidationRule.REQUIRED
        )
    if confirmation != password:
        return FieldViolation(
            ValidationField.CONFIRM_PASSWORD, ValidationRule.MISMATCH
        )
    return None


def validate_sign_up(form: SignUpForm) -> FieldViolation | None:
    """Return the first rule the form breaks, or None when it is valid."""
    checks = (
        lambda: validate_name(form.first_name, ValidationField.FIRST_NAME),
        lambda: validate_name(form.last_name, ValidationField.LAST_NAME),
        lambda: validate_email(form.email),
        lambda: validate_address(form.address),
        lambda: validate_password(form.password),
        lambda: validate_confirmation(form.password, form.confirm_password),
    )
    for check in checks:
        violation = check()
        if violation is not None:
            return violation
    return None
