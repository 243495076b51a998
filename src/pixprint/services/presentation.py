"""User-facing messages for sign-up outcomes."""

from dataclasses import dataclass
from enum import Enum

from pixprint.domain.errors import (
    AuthErrorKind,
    FieldViolation,
    ValidationField,
    ValidationRule,
)
from pixprint.domain.outcomes import (
    AttemptInProgress,
    AuthFailed,
    ConversionOutcome,
    EmailExists,
    ProfileIncomplete,
    SignUpSucceeded,
    ValidationFailed,
)


class NextStep(str, Enum):
    """The one action a user should take after an outcome."""

    FIX_INPUT = "fix_input"
    RETRY = "retry"
    CHANGE_EMAIL = "change_email"
    SIGN_IN = "sign_in"
    STRENGTHEN_PASSWORD = "strengthen_password"
    WAIT = "wait"
    CONTINUE = "continue"


@dataclass(frozen=True)
class Presentation:
    """Title, message and next step shown for an outcome."""

    title: str
    message: str
    next_step: NextStep

    def as_dict(self) -> dict[str, str]:
        return {
            "title": self.title,
            "message": self.message,
            "next_step": self.next_step.value,
        }


_FIELD_LABELS = {
    ValidationField.FIRST_NAME: "First name",
    ValidationField.LAST_NAME: "Last name",
    ValidationField.EMAIL: "Email",
    ValidationField.ADDRESS: "Address",
    ValidationField.PASSWORD: "Password",
    ValidationField.CONFIRM_PASSWORD: "Password confirmation",
}

_AUTH_MESSAGES = {
    AuthErrorKind.EMAIL_IN_USE: (
        "Email Already Registered",
        "An account with this email already exists. Try signing in instead.",
        NextStep.SIGN_IN,
    ),
    AuthErrorKind.WEAK_PASSWORD: (
        "Weak Password",
        "Please choose a stronger password with numbers, capitals and symbols.",
        NextStep.STRENGTHEN_PASSWORD,
    ),
    AuthErrorKind.INVALID_EMAIL: (
        "Invalid Email",
        "Please enter a valid email address.",
        NextStep.CHANGE_EMAIL,
    ),
    AuthErrorKind.NETWORK_FAILURE: (
        "Connection Problem",
        "We couldn't reach the server. Check your connection and try again.",
        NextStep.RETRY,
    ),
    AuthErrorKind.TOO_MANY_REQUESTS: (
        "Too Many Attempts",
        "Too many sign-up attempts. Please wait a moment before trying again.",
        NextStep.WAIT,
    ),
    AuthErrorKind.UNKNOWN: (
        "Sign Up Failed",
        "Something went wrong while creating your account. Please try again.",
        NextStep.FIX_INPUT,
    ),
}


def describe_violation(violation: FieldViolation) -> str:
    """Return the inline message for a validation failure."""
    label = _FIELD_LABELS[violation.field]
    rule = violation.rule
    if rule is ValidationRule.REQUIRED:
        return f"{label} is required."
    if rule is ValidationRule.TOO_SHORT:
        if violation.field is ValidationField.PASSWORD:
            return "Password must be at least 6 characters."
        if violation.field is ValidationField.ADDRESS:
            return "Address must be at least 5 characters."
        return f"{label} must be at least 2 characters."
    if rule is ValidationRule.INVALID_CHARACTERS:
        return f"{label} can only contain letters, spaces, hyphens and apostrophes."
    if rule is ValidationRule.INVALID_FORMAT:
        return "Please enter a valid email address."
    if rule is ValidationRule.WEAK:
        return (
            "Password is too weak. Use at least 8 characters, a number, "
            "a capital letter or a symbol."
        )
    return "Passwords do not match."


def present(outcome: ConversionOutcome) -> Presentation:
    """Map a sign-up outcome to what the user should see."""
    if isinstance(outcome, ValidationFailed):
        next_step = (
            NextStep.STRENGTHEN_PASSWORD
            if outcome.violation.rule is ValidationRule.WEAK
            else NextStep.FIX_INPUT
        )
        return Presentation(
            "Check Your Details", describe_violation(outcome.violation), next_step
        )
    if isinstance(outcome, EmailExists):
        return Presentation(
            "Email Already Registered",
            "An account with this email already exists. Try signing in instead.",
            NextStep.SIGN_IN,
        )
    if isinstance(outcome, AuthFailed):
        title, message, next_step = _AUTH_MESSAGES[outcome.kind]
        return Presentation(title, message, next_step)
    if isinstance(outcome, ProfileIncomplete):
        return Presentation(
            "Almost There",
            "Your account was created but we couldn't save your profile. "
            "Tap retry to finish setting it up.",
            NextStep.RETRY,
        )
    if isinstance(outcome, AttemptInProgress):
        return Presentation(
            "Please Wait",
            "Your sign-up is still being processed.",
            NextStep.WAIT,
        )
    if isinstance(outcome, SignUpSucceeded):
        if outcome.identity.converted_from_guest:
            message = "Your account is ready and your guest photos are now yours."
        else:
            message = "Your account has been created successfully!"
        return Presentation("Welcome to PixPrint", message, NextStep.CONTINUE)
    raise TypeError(f"Unsupported outcome: {outcome!r}")
