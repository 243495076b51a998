"""Tagged outcomes returned by the conversion orchestrator."""

from dataclasses import dataclass

from pixprint.domain.errors import AuthErrorKind, FieldViolation
from pixprint.domain.guests import MigrationReport
from pixprint.domain.models import Identity


@dataclass(frozen=True)
class ValidationFailed:
    """The form broke a validation rule; nothing was sent anywhere."""

    violation: FieldViolation
    tag: str = "validation_error"


@dataclass(frozen=True)
class EmailExists:
    """The email is already registered; no identity was created."""

    email: str
    tag: str = "email_exists"


@dataclass(frozen=True)
class AuthFailed:
    """The auth provider refused to create the identity."""

    kind: AuthErrorKind
    tag: str = "auth_error"

    @property
    def retryable(self) -> bool:
        return self.kind.retryable


@dataclass(frozen=True)
class ProfileIncomplete:
    """The identity exists but its profile still needs to be written."""

    identity_id: str
    stage: str
    tag: str = "profile_incomplete"
    retryable: bool = True


@dataclass(frozen=True)
class AttemptInProgress:
    """Another step of this attempt has not resolved yet."""

    tag: str = "in_progress"


@dataclass(frozen=True)
class SignUpSucceeded:
    """The account exists and the guest records were migrated if needed."""

    identity: Identity
    migration: MigrationReport | None = None
    tag: str = "success"


ConversionOutcome = (
    ValidationFailed
    | EmailExists
    | AuthFailed
    | ProfileIncomplete
    | AttemptInProgress
    | SignUpSucceeded
)
