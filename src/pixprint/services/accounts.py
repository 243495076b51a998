"""Account provisioning: identity creation and profile persistence."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime

from pixprint.domain.errors import (
    AccountCreationError,
    AuthErrorKind,
    PendingProfile,
    ProfileWriteError,
)
from pixprint.domain.models import GuestContext, Identity, SignUpForm
from pixprint.services.documents import DocumentStore
from pixprint.services.identity import AuthProvider

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class AccountProvisioner:
    """Creates identities and writes their profile documents."""

    auth_provider: AuthProvider
    document_store: DocumentStore
    profiles_collection: str = "user_tbl"
    clock: Callable[[], datetime] = field(default=_utcnow)

    async def provision(
        self, form: SignUpForm, guest: GuestContext | None = None
    ) -> Identity:
        """Create the identity for a validated form and write its profile.

        Raises ``AccountCreationError`` when the identity could not be
        created, and ``ProfileWriteError`` when it was created but the
        display name or profile document could not be written.
        """
        pending = await self.create_identity(form, guest)
        return await self.complete_profile(pending)

    async def create_identity(
        self, form: SignUpForm, guest: GuestContext | None = None
    ) -> PendingProfile:
        """Create the authenticated identity and prepare its profile."""
        email = form.normalized_email
        try:
            identity_id = await self.auth_provider.create_account(
                email, form.password
            )
        except AccountCreationError:
            raise
        except Exception as exc:
            raise AccountCreationError(AuthErrorKind.UNKNOWN, str(exc)) from exc

        created_at = self.clock()
        identity = Identity(
            id=identity_id,
            email=email,
            display_name=form.display_name,
            address=form.address.strip(),
            created_at=created_at,
            converted_from_guest=guest is not None,
            guest_username=guest.username if guest else None,
        )
        _logger.info("Identity created: identity_id=%s", identity_id)
        return PendingProfile(
            identity=identity,
            profile=build_profile_document(form, identity, guest),
        )

    async def complete_profile(self, pending: PendingProfile) -> Identity:
        """Finish the steps that follow identity creation.

        Safe to call again after a ``ProfileWriteError``; the identity is
        never re-created.
        """
        identity = pending.identity
        if not pending.display_name_applied:
            try:
                await self.auth_provider.update_display_name(
                    identity.id, identity.display_name
                )
            except Exception as exc:
                _logger.warning(
                    "Display name update failed: identity_id=%s", identity.id
                )
                raise ProfileWriteError(pending, "display_name") from exc
            pending.display_name_applied = True

        try:
            await self.document_store.set_document(
                self.profiles_collection, identity.id, pending.profile
            )
        except Exception as exc:
            _logger.warning(
                "Profile document write failed: identity_id=%s", identity.id
            )
            raise ProfileWriteError(pending, "profile_document") from exc
        return identity


def build_profile_document(
    form: SignUpForm, identity: Identity, guest: GuestContext | None
) -> dict[str, object]:
    """Build the stored profile for a new identity."""
    created_at = identity.created_at.isoformat()
    # Stored verbatim pending security review of profile contents.
    profile: dict[str, object] = {
        "user_id": identity.id,
        "user_email": identity.email,
        "user_firstname": form.first_name.strip(),
        "user_lastname": form.last_name.strip(),
        "user_address": identity.address,
        "user_password": form.password,
        "created_at": created_at,
        "profile_completed": True,
    }
    if guest is not None:
        profile["converted_from_guest"] = True
        profile["guest_username"] = guest.username
        profile["converted_at"] = created_at
    return profile
