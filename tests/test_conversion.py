"""Tests for the sign-up and guest conversion orchestrator."""

import asyncio

import pytest

from pixprint.domain.errors import AuthErrorKind, ValidationField, ValidationRule
from pixprint.domain.models import GuestContext
from pixprint.domain.outcomes import (
    AttemptInProgress,
    AuthFailed,
    EmailExists,
    ProfileIncomplete,
    SignUpSucceeded,
    ValidationFailed,
)
from pixprint.services.conversion import ConversionOrchestrator, ConversionState
from tests.conftest import (
    InMemoryAuthProvider,
    InMemoryDocumentStore,
    make_form,
    seed_guest,
)

GUEST = GuestContext(event_id="evt1", username="bob123")


def test_plain_sign_up_succeeds_without_migration(
    orchestrator: ConversionOrchestrator, document_store: InMemoryDocumentStore
) -> None:
    outcome = asyncio.run(orchestrator.submit(make_form()))

    assert isinstance(outcome, SignUpSucceeded)
    assert outcome.identity.email == "a@b.com"
    assert outcome.migration is None
    assert orchestrator.state is ConversionState.DONE
    assert "query_documents" not in document_store.calls


def test_guest_sign_up_migrates_all_records(
    orchestrator: ConversionOrchestrator, document_store: InMemoryDocumentStore
) -> None:
    seed_guest(document_store)

    outcome = asyncio.run(orchestrator.submit(make_form(), GUEST))

    assert isinstance(outcome, SignUpSucceeded)
    report = outcome.migration
    assert report is not None
    assert report.membership_updated is True
    assert report.photos_matched == 2
    assert report.photos_updated is True
    identity_id = outcome.identity.id
    rows = document_store.rows("joined_tbl") + document_store.rows("photos_tbl")
    assert len(rows) == 3
    assert all(row["user_id"] == identity_id for row in rows)
    assert all(row["is_guest"] is False for row in document_store.rows("photos_tbl"))


@pytest.mark.parametrize(
    ("overrides", "field"),
    [
        ({"first_name": "J"}, ValidationField.FIRST_NAME),
        ({"last_name": "Sm1th"}, ValidationField.LAST_NAME),
        ({"email": "not-an-email"}, ValidationField.EMAIL),
        ({"address": "abc"}, ValidationField.ADDRESS),
        ({"password": "abc", "confirm_password": "abc"}, ValidationField.PASSWORD),
        ({"confirm_password": "different"}, ValidationField.CONFIRM_PASSWORD),
    ],
)
def test_validation_failure_makes_no_calls(
    orchestrator: ConversionOrchestrator,
    auth_provider: InMemoryAuthProvider,
    document_store: InMemoryDocumentStore,
    overrides: dict[str, str],
    field: ValidationField,
) -> None:
    outcome = asyncio.run(orchestrator.submit(make_form(**overrides), GUEST))

    assert isinstance(outcome, ValidationFailed)
    assert outcome.violation.field is field
    assert auth_provider.calls == []
    assert document_store.calls == []
    assert orchestrator.state is ConversionState.IDLE


def test_short_password_reports_too_short(
    orchestrator: ConversionOrchestrator,
) -> None:
    outcome = asyncio.run(
        orchestrator.submit(make_form(password="abc", confirm_password="abc"))
    )

    assert isinstance(outcome, ValidationFailed)
    assert outcome.violation.field is ValidationField.PASSWORD
    assert outcome.violation.rule is ValidationRule.TOO_SHORT


def test_registered_email_stops_before_creation(
    orchestrator: ConversionOrchestrator, auth_provider: InMemoryAuthProvider
) -> None:
    auth_provider.accounts["a@b.com"] = "existing"

    outcome = asyncio.run(orchestrator.submit(make_form(email="A@b.com")))

    assert outcome == EmailExists("a@b.com")
    assert "create_account" not in auth_provider.calls


def test_lookup_failure_still_signs_up(
    orchestrator: ConversionOrchestrator, auth_provider: InMemoryAuthProvider
) -> None:
    auth_provider.lookup_error = True

    outcome = asyncio.run(orchestrator.submit(make_form()))

    assert isinstance(outcome, SignUpSucceeded)


def test_email_in_use_writes_no_profile(
    orchestrator: ConversionOrchestrator,
    auth_provider: InMemoryAuthProvider,
    document_store: InMemoryDocumentStore,
) -> None:
    auth_provider.create_errors.append(AuthErrorKind.EMAIL_IN_USE)

    outcome = asyncio.run(orchestrator.submit(make_form(), GUEST))

    assert outcome == AuthFailed(AuthErrorKind.EMAIL_IN_USE)
    assert not outcome.retryable
    assert document_store.calls == []
    assert orchestrator.can_retry is False
    assert orchestrator.state is ConversionState.IDLE


def test_network_failure_retries_creation_without_revalidating(
    orchestrator: ConversionOrchestrator, auth_provider: InMemoryAuthProvider
) -> None:
    auth_provider.create_errors.append(AuthErrorKind.NETWORK_FAILURE)

    first = asyncio.run(orchestrator.submit(make_form()))
    assert isinstance(first, AuthFailed)
    assert first.retryable
    assert orchestrator.can_retry

    second = asyncio.run(orchestrator.retry())

    assert isinstance(second, SignUpSucceeded)
    assert auth_provider.calls.count("list_sign_in_methods") == 1
    assert auth_provider.calls.count("create_account") == 2


def test_profile_failure_is_retried_without_creating_again(
    orchestrator: ConversionOrchestrator,
    auth_provider: InMemoryAuthProvider,
    document_store: InMemoryDocumentStore,
) -> None:
    seed_guest(document_store)
    document_store.set_failures = 1

    first = asyncio.run(orchestrator.submit(make_form(), GUEST))

    assert isinstance(first, ProfileIncomplete)
    assert first.stage == "profile_document"
    assert first.identity_id in auth_provider.accounts.values()
    assert "query_documents" not in document_store.calls

    second = asyncio.run(orchestrator.retry())

    assert isinstance(second, SignUpSucceeded)
    assert second.identity.id == first.identity_id
    assert auth_provider.calls.count("create_account") == 1
    assert second.migration is not None
    assert second.migration.photos_matched == 2
    assert orchestrator.can_retry is False


def test_retry_without_failure_returns_none(
    orchestrator: ConversionOrchestrator,
) -> None:
    assert asyncio.run(orchestrator.retry()) is None


def test_second_submit_while_in_flight_is_rejected(
    orchestrator: ConversionOrchestrator, auth_provider: InMemoryAuthProvider
) -> None:
    async def run_both() -> tuple[object, object, bool]:
        auth_provider.create_gate = asyncio.Event()
        first = asyncio.create_task(orchestrator.submit(make_form()))
        await asyncio.sleep(0)
        second = await orchestrator.submit(make_form())
        cancelled = orchestrator.cancel()
        auth_provider.create_gate.set()
        return await first, second, cancelled

    first, second, cancelled = asyncio.run(run_both())

    assert isinstance(first, SignUpSucceeded)
    assert second == AttemptInProgress()
    assert cancelled is False
    assert auth_provider.calls.count("create_account") == 1


def test_cancel_only_before_network_steps(
    orchestrator: ConversionOrchestrator,
) -> None:
    assert orchestrator.cancel() is True

    asyncio.run(orchestrator.submit(make_form()))

    assert orchestrator.state is ConversionState.DONE
    assert orchestrator.cancel() is False


def test_cancel_discards_pending_retry(
    orchestrator: ConversionOrchestrator, auth_provider: InMemoryAuthProvider
) -> None:
    auth_provider.create_errors.append(AuthErrorKind.NETWORK_FAILURE)
    asyncio.run(orchestrator.submit(make_form()))

    assert orchestrator.cancel() is True
    assert orchestrator.can_retry is False
    assert asyncio.run(orchestrator.retry()) is None


def test_no_guest_photo_left_pending_after_conversion(
    orchestrator: ConversionOrchestrator, document_store: InMemoryDocumentStore
) -> None:
    seed_guest(document_store, photos=5)

    outcome = asyncio.run(orchestrator.submit(make_form(), GUEST))

    assert isinstance(outcome, SignUpSucceeded)
    for photo in document_store.rows("photos_tbl"):
        assert photo["is_guest"] is False
        assert photo["user_id"] == outcome.identity.id


def test_profile_failure_cannot_be_cancelled(
    orchestrator: ConversionOrchestrator, document_store: InMemoryDocumentStore
) -> None:
    document_store.set_failures = 1

    outcome = asyncio.run(orchestrator.submit(make_form()))

    assert isinstance(outcome, ProfileIncomplete)
    assert orchestrator.state is ConversionState.PROFILE_WRITING
    assert orchestrator.cancel() is False
    assert orchestrator.can_retry is True


def test_resubmit_after_profile_failure_finishes_the_same_identity(
    orchestrator: ConversionOrchestrator,
    auth_provider: InMemoryAuthProvider,
    document_store: InMemoryDocumentStore,
) -> None:
    seed_guest(document_store)
    document_store.set_failures = 1
    first = asyncio.run(orchestrator.submit(make_form(), GUEST))
    assert isinstance(first, ProfileIncomplete)

    second = asyncio.run(orchestrator.submit(make_form(), GUEST))

    assert isinstance(second, SignUpSucceeded)
    assert second.identity.id == first.identity_id
    assert auth_provider.calls.count("create_account") == 1
    assert auth_provider.calls.count("list_sign_in_methods") == 1
    assert document_store.rows("user_tbl")[0]["user_id"] == first.identity_id
    assert all(row["is_guest"] is False for row in document_store.rows("photos_tbl"))
