"""Error taxonomy for the sign-up and guest conversion flow."""

from dataclasses import dataclass
from enum import Enum

from pixprint.domain.models import Identity


class ValidationField(str, Enum):
    """Form fields checked by the input validator."""

    FIRST_NAME = "first_name"
    LAST_NAME = "last_name"
    EMAIL = "email"
    ADDRESS = "address"
    PASSWORD = "password"
    CONFIRM_PASSWORD = "confirm_password"


class ValidationRule(str, Enum):
    """Validator rules, reported alongside the failing field."""

    REQUIRED = "required"
    TOO_SHORT = "too_short"
    INVALID_CHARACTERS = "invalid_characters"
    INVALID_FORMAT = "invalid_format"
    WEAK = "weak"
    MISMATCH = "mismatch"


@dataclass(frozen=True)
class FieldViolation:
    """The first validation rule a sign-up form breaks."""

    field: ValidationField
    rule: ValidationRule


class AuthErrorKind(str, Enum):
    """Classified failures of the authentication provider."""

    EMAIL_IN_USE = "email_in_use"
    WEAK_PASSWORD = "weak_password"
    INVALID_EMAIL = "invalid_email"
    NETWORK_FAILURE = "network_failure"
    TOO_MANY_REQUESTS = "too_many_requests"
    UNKNOWN = "unknown"

    @property
    def retryable(self) -> bool:
        return self is AuthErrorKind.NETWORK_FAILURE


class AccountError(Exception):
    """Base class for account provisioning failures."""


class AccountCreationError(AccountError):
    """The authenticated identity could not be created."""

    def __init__(self, kind: AuthErrorKind, message: str | None = None) -> None:
        super().__init__(message or kind.value)
        self.kind = kind


@dataclass
class PendingProfile:
    """An identity that exists but whose profile is not fully written."""

    identity: Identity
    profile: dict[str, object]
    display_name_applied: bool = False


class ProfileWriteError(AccountError):
    """The identity was created but its profile could not be completed."""

    def __init__(self, pending: PendingProfile, stage: str) -> None:
        super().__init__(
            f"Account {pending.identity.id} created but {stage} failed"
        )
        self.pending = pending
        self.stage = stage


class IdentityLookupError(Exception):
    """The auth provider could not tell whether an email is registered."""


class DocumentStoreError(Exception):
    """A read or write against the document store failed."""
