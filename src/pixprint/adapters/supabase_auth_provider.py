"""Supabase Auth implementation of the authentication provider."""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime

import httpx
from supabase import AuthRetryableError, AuthWeakPasswordError, Client

from pixprint.domain.errors import (
    AccountCreationError,
    AuthErrorKind,
    IdentityLookupError,
)
from pixprint.domain.models import Identity
from pixprint.services.auth_state import AuthStateChannel
from pixprint.services.identity import AuthProvider

_logger = logging.getLogger(__name__)

_LIST_USERS_PAGE_SIZE = 200
_HTTP_TOO_MANY_REQUESTS = 429

_ERROR_CODES = {
    "email_exists": AuthErrorKind.EMAIL_IN_USE,
    "user_already_exists": AuthErrorKind.EMAIL_IN_USE,
    "weak_password": AuthErrorKind.WEAK_PASSWORD,
    "email_address_invalid": AuthErrorKind.INVALID_EMAIL,
    "validation_failed": AuthErrorKind.INVALID_EMAIL,
    "over_request_rate_limit": AuthErrorKind.TOO_MANY_REQUESTS,
    "over_email_send_rate_limit": AuthErrorKind.TOO_MANY_REQUESTS,
}


def classify_auth_error(exc: BaseException) -> AuthErrorKind:
    """Map a Supabase Auth or transport exception to an error kind."""
    if isinstance(exc, httpx.TransportError | AuthRetryableError):
        return AuthErrorKind.NETWORK_FAILURE
    if isinstance(exc, AuthWeakPasswordError):
        return AuthErrorKind.WEAK_PASSWORD
    code = getattr(exc, "code", None)
    if isinstance(code, str) and code in _ERROR_CODES:
        return _ERROR_CODES[code]
    if getattr(exc, "status", None) == _HTTP_TOO_MANY_REQUESTS:
        return AuthErrorKind.TOO_MANY_REQUESTS
    if "already" in str(exc).lower() and "registered" in str(exc).lower():
        return AuthErrorKind.EMAIL_IN_USE
    return AuthErrorKind.UNKNOWN


@dataclass
class SupabaseAuthProvider(AuthProvider):
    """Authentication provider backed by the Supabase Auth admin API."""

    client: Client

    async def create_account(self, email: str, password: str) -> str:
        """Create a confirmed user and return its id."""
        try:
            response = await asyncio.to_thread(
                self.client.auth.admin.create_user,
                {"email": email, "password": password, "email_confirm": True},
            )
        except Exception as exc:
            kind = classify_auth_error(exc)
            _logger.warning("Supabase create_user failed: kind=%s", kind.value)
            raise AccountCreationError(kind, str(exc)) from exc
        if response is None or response.user is None:
            raise AccountCreationError(
                AuthErrorKind.UNKNOWN, "Supabase returned no user"
            )
        return str(response.user.id)

    async def update_display_name(self, identity_id: str, name: str) -> None:
        """Store the display name in the user's metadata."""
        await asyncio.to_thread(
            self.client.auth.admin.update_user_by_id,
            identity_id,
            {"user_metadata": {"display_name": name}},
        )

    async def list_sign_in_methods(self, email: str) -> list[str]:
        """Return the providers registered for an email."""
        try:
            return await asyncio.to_thread(self._sign_in_methods, email)
        except Exception as exc:
            raise IdentityLookupError(str(exc)) from exc

    async def current_identity(self) -> Identity | None:
        """Return the identity of the active session, if any."""
        response = await asyncio.to_thread(self.client.auth.get_user)
        if response is None or response.user is None:
            return None
        return identity_from_user(response.user)

    def watch(
        self, channel: AuthStateChannel, loop: asyncio.AbstractEventLoop
    ) -> Callable[[], None]:
        """Forward Supabase auth events to ``channel`` on ``loop``.

        Returns a callable that stops forwarding.
        """

        def _forward(_event: object, session: object | None) -> None:
            user = getattr(session, "user", None) if session else None
            identity = identity_from_user(user) if user else None
            asyncio.run_coroutine_threadsafe(channel.publish(identity), loop)

        subscription = self.client.auth.on_auth_state_change(_forward)
        return subscription.unsubscribe

    def _sign_in_methods(self, email: str) -> list[str]:
        target = email.strip().lower()
        page = 1
        while True:
            users = self.client.auth.admin.list_users(
                page=page, per_page=_LIST_USERS_PAGE_SIZE
            )
            for user in users:
                if (user.email or "").lower() == target:
                    return _providers(user)
            if len(users) < _LIST_USERS_PAGE_SIZE:
                return []
            page += 1


def identity_from_user(user: object) -> Identity:
    """Build an identity from a Supabase user object."""
    metadata = getattr(user, "user_metadata", None) or {}
    created_at = getattr(user, "created_at", None)
    if isinstance(created_at, str):
        created_at = datetime.fromisoformat(created_at)
    if not isinstance(created_at, datetime):
        created_at = datetime.now(tz=UTC)
    return Identity(
        id=str(getattr(user, "id", "")),
        email=(getattr(user, "email", None) or "").lower(),
        display_name=str(metadata.get("display_name", "")),
        address=str(metadata.get("address", "")),
        created_at=created_at,
    )


def _providers(user: object) -> list[str]:
    app_metadata = getattr(user, "app_metadata", None) or {}
    providers = app_metadata.get("providers")
    if isinstance(providers, list) and providers:
        return [str(provider) for provider in providers]
    identities = getattr(user, "identities", None) or []
    methods = [getattr(identity, "provider", None) for identity in identities]
    return [str(method) for method in methods if method] or ["email"]
