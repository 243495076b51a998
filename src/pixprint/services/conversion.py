"""Sign-up orchestration, including guest-to-account conversion."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum

from pixprint.domain.errors import (
    AccountCreationError,
    FieldViolation,
    PendingProfile,
    ProfileWriteError,
)
from pixprint.domain.models import GuestContext, Identity, SignUpForm
from pixprint.domain.outcomes import (
    AttemptInProgress,
    AuthFailed,
    ConversionOutcome,
    EmailExists,
    ProfileIncomplete,
    SignUpSucceeded,
    ValidationFailed,
)
from pixprint.services.accounts import AccountProvisioner
from pixprint.services.identity import IdentityExistenceChecker
from pixprint.services.migration import GuestMigrationEngine
from pixprint.services.validation import validate_sign_up

_logger = logging.getLogger(__name__)


class ConversionState(str, Enum):
    """Steps of a single sign-up attempt."""

    IDLE = "idle"
    VALIDATING = "validating"
    CHECKING_EMAIL = "checking_email"
    CREATING = "creating"
    PROFILE_WRITING = "profile_writing"
    MIGRATING = "migrating"
    DONE = "done"


_CANCELLABLE_STATES = {ConversionState.IDLE, ConversionState.VALIDATING}


@dataclass
class _ResumePoint:
    form: SignUpForm
    guest: GuestContext | None
    pending: PendingProfile | None = None


@dataclass
class ConversionOrchestrator:
    """Runs one sign-up attempt from form validation to guest migration.

    Only one step may be in flight at a time; a second ``submit`` or
    ``retry`` while one is pending resolves to ``AttemptInProgress``.
    Retryable failures remember where they stopped so ``retry`` re-enters
    that step without validating or creating the identity again. Once an
    identity exists the attempt stays in ``PROFILE_WRITING`` until its
    profile is written: it cannot be cancelled, and ``submit`` resumes the
    profile write instead of starting over.
    """

    existence_checker: IdentityExistenceChecker
    provisioner: AccountProvisioner
    migration_engine: GuestMigrationEngine
    validate: Callable[[SignUpForm], FieldViolation | None] = validate_sign_up
    state: ConversionState = field(default=ConversionState.IDLE, init=False)
    _in_flight: bool = field(default=False, init=False, repr=False)
    _resume: _ResumePoint | None = field(default=None, init=False, repr=False)

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    @property
    def can_retry(self) -> bool:
        return self._resume is not None

    async def submit(
        self, form: SignUpForm, guest: GuestContext | None = None
    ) -> ConversionOutcome:
        """Validate the form and run the whole sign-up."""
        if self._in_flight:
            _logger.info("Rejected sign-up submit while an attempt is in flight")
            return AttemptInProgress()
        self._in_flight = True
        try:
            return await self._run(form, guest)
        finally:
            self._in_flight = False

    async def retry(self) -> ConversionOutcome | None:
        """Re-enter the step that last failed with a retryable error.

        Returns None when there is nothing to retry.
        """
        if self._in_flight:
            return AttemptInProgress()
        resume = self._resume
        if resume is None:
            return None
        self._in_flight = True
        try:
            return await self._resume_from(resume)
        finally:
            self._in_flight = False

    def cancel(self) -> bool:
        """Abandon the attempt; only possible before any network step starts."""
        if self._in_flight or self.state not in _CANCELLABLE_STATES:
            return False
        self._resume = None
        self.state = ConversionState.IDLE
        return True

    async def _run(
        self, form: SignUpForm, guest: GuestContext | None
    ) -> ConversionOutcome:
        if self._resume is not None and self._resume.pending is not None:
            _logger.info(
                "Identity already created, resuming profile write: identity_id=%s",
                self._resume.pending.identity.id,
            )
            return await self._resume_from(self._resume)

        self._resume = None
        self.state = ConversionState.VALIDATING
        violation = self.validate(form)
        if violation is not None:
            self.state = ConversionState.IDLE
            return ValidationFailed(violation)

        self.state = ConversionState.CHECKING_EMAIL
        if await self.existence_checker.email_is_registered(form.email):
            self.state = ConversionState.IDLE
            return EmailExists(form.normalized_email)

        return await self._create(form, guest)

    async def _resume_from(self, resume: _ResumePoint) -> ConversionOutcome:
        if resume.pending is not None:
            return await self._write_profile(resume.form, resume.guest, resume.pending)
        return await self._create(resume.form, resume.guest)

    async def _create(
        self, form: SignUpForm, guest: GuestContext | None
    ) -> ConversionOutcome:
        self.state = ConversionState.CREATING
        try:
            pending = await self.provisioner.create_identity(form, guest)
        except AccountCreationError as exc:
            _logger.warning("Account creation failed: kind=%s", exc.kind.value)
            self._resume = _ResumePoint(form, guest) if exc.kind.retryable else None
            self.state = ConversionState.IDLE
            return AuthFailed(exc.kind)
        return await self._write_profile(form, guest, pending)

    async def _write_profile(
        self, form: SignUpForm, guest: GuestContext | None, pending: PendingProfile
    ) -> ConversionOutcome:
        self.state = ConversionState.PROFILE_WRITING
        try:
            identity = await self.provisioner.complete_profile(pending)
        except ProfileWriteError as exc:
            self._resume = _ResumePoint(form, guest, pending)
            return ProfileIncomplete(exc.pending.identity.id, exc.stage)
        return await self._finish(identity, guest)

    async def _finish(
        self, identity: Identity, guest: GuestContext | None
    ) -> ConversionOutcome:
        self._resume = None
        report = None
        if guest is not None:
            self.state = ConversionState.MIGRATING
            report = await self.migration_engine.migrate(
                identity.id, guest.username, guest.event_id
            )
            if not report.is_complete:
                _logger.warning(
                    "Guest migration incomplete: identity_id=%s errors=%s",
                    identity.id,
                    report.errors,
                )
        self.state = ConversionState.DONE
        return SignUpSucceeded(identity=identity, migration=report)
