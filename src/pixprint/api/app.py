"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from uuid import uuid4

from fastapi import FastAPI, HTTPException, Request, status

from pixprint.api.signup_models import SignUpRequest
from pixprint.app_logging import configure_logging
from pixprint.config import parse_log_level
from pixprint.containers import AppContainer
from pixprint.domain.outcomes import (
    AuthFailed,
    ConversionOutcome,
    EmailExists,
    ProfileIncomplete,
    SignUpSucceeded,
    ValidationFailed,
)
from pixprint.services.conversion import ConversionOrchestrator
from pixprint.services.presentation import present


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging(parse_log_level(container.settings.log_level))
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await app.state.container.open_resources()
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container
    app.state.attempts = {}
    app.state.attempt_emails = {}

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post("/signup")
    async def signup(payload: SignUpRequest, request: Request) -> dict[str, object]:
        """Run a sign-up attempt, converting a guest when one is given.

        Requests for an email that already has a live attempt join that
        attempt, so a repeated submit cannot start a second account creation.
        """
        state_container: AppContainer = request.app.state.container
        attempts: dict[str, ConversionOrchestrator] = request.app.state.attempts
        emails: dict[str, str] = request.app.state.attempt_emails
        form = payload.to_form()
        email_key = form.normalized_email
        attempt_id = _resolve_attempt_id(
            attempts, emails.get(email_key), payload.attempt_id
        )
        orchestrator = attempts.get(attempt_id)
        if orchestrator is None:
            orchestrator = state_container.new_orchestrator()
            attempts[attempt_id] = orchestrator
        if email_key:
            emails[email_key] = attempt_id
        guest = payload.guest.to_context() if payload.guest else None
        outcome = await orchestrator.submit(form, guest)
        _settle_attempt(attempts, emails, attempt_id, orchestrator)
        logger.info("Sign-up attempt %s resolved: %s", attempt_id, outcome.tag)
        return _serialize_outcome(attempt_id, outcome)

    @app.post("/signup/{attempt_id}/retry")
    async def retry_signup(attempt_id: str, request: Request) -> dict[str, object]:
        """Retry the step of an attempt that failed with a retryable error."""
        attempts: dict[str, ConversionOrchestrator] = request.app.state.attempts
        orchestrator = attempts.get(attempt_id)
        if orchestrator is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
        outcome = await orchestrator.retry()
        if outcome is None:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Nothing to retry for this attempt.",
            )
        _settle_attempt(
            attempts, request.app.state.attempt_emails, attempt_id, orchestrator
        )
        logger.info("Sign-up retry %s resolved: %s", attempt_id, outcome.tag)
        return _serialize_outcome(attempt_id, outcome)

    @app.post("/signup/{attempt_id}/cancel")
    async def cancel_signup(attempt_id: str, request: Request) -> dict[str, object]:
        """Cancel an attempt that has no network step in flight."""
        attempts: dict[str, ConversionOrchestrator] = request.app.state.attempts
        orchestrator = attempts.get(attempt_id)
        if orchestrator is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
        cancelled = orchestrator.cancel()
        if cancelled:
            _forget_attempt(attempts, request.app.state.attempt_emails, attempt_id)
        return {"attempt_id": attempt_id, "cancelled": cancelled}

    return app


def _resolve_attempt_id(
    attempts: dict[str, ConversionOrchestrator],
    email_attempt_id: str | None,
    requested_id: str | None,
) -> str:
    """Pick the attempt a sign-up request belongs to.

    An in-flight attempt for the same email always wins; otherwise the
    client's id is used, then any live attempt for the email.
    """
    if email_attempt_id is not None and attempts[email_attempt_id].in_flight:
        return email_attempt_id
    return requested_id or email_attempt_id or str(uuid4())


def _settle_attempt(
    attempts: dict[str, ConversionOrchestrator],
    emails: dict[str, str],
    attempt_id: str,
    orchestrator: ConversionOrchestrator,
) -> None:
    """Forget attempts that can neither be retried nor are still running."""
    if orchestrator.in_flight or orchestrator.can_retry:
        return
    _forget_attempt(attempts, emails, attempt_id)


def _forget_attempt(
    attempts: dict[str, ConversionOrchestrator],
    emails: dict[str, str],
    attempt_id: str,
) -> None:
    attempts.pop(attempt_id, None)
    for email in [key for key, value in emails.items() if value == attempt_id]:
        del emails[email]


def _serialize_outcome(
    attempt_id: str, outcome: ConversionOutcome
) -> dict[str, object]:
    body: dict[str, object] = {
        "attempt_id": attempt_id,
        "outcome": outcome.tag,
        "presentation": present(outcome).as_dict(),
    }
    if isinstance(outcome, ValidationFailed):
        body["field"] = outcome.violation.field.value
        body["rule"] = outcome.violation.rule.value
    elif isinstance(outcome, EmailExists):
        body["email"] = outcome.email
    elif isinstance(outcome, AuthFailed):
        body["kind"] = outcome.kind.value
        body["retryable"] = outcome.retryable
    elif isinstance(outcome, ProfileIncomplete):
        body["identity_id"] = outcome.identity_id
        body["stage"] = outcome.stage
        body["retryable"] = outcome.retryable
    elif isinstance(outcome, SignUpSucceeded):
        identity = outcome.identity
        body["identity"] = {
            "id": identity.id,
            "email": identity.email,
            "display_name": identity.display_name,
            "created_at": identity.created_at.isoformat(),
            "converted_from_guest": identity.converted_from_guest,
            "guest_username": identity.guest_username,
        }
        body["migration"] = outcome.migration.as_dict() if outcome.migration else None
    return body
