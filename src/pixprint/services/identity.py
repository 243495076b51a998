"""Authentication provider interface and email existence checks."""

import logging
from dataclasses import dataclass
from typing import Protocol

from pixprint.domain.models import Identity

_logger = logging.getLogger(__name__)


class AuthProvider(Protocol):
    """Primitives of the authentication provider."""

    async def create_account(self, email: str, password: str) -> str:
        """Create an identity and return its id.

        Raises ``AccountCreationError`` with a classified kind on failure.
        """

    async def update_display_name(self, identity_id: str, name: str) -> None:
        """Set the display name of an identity."""

    async def list_sign_in_methods(self, email: str) -> list[str]:
        """Return the sign-in methods registered for an email.

        Raises ``IdentityLookupError`` when the provider cannot answer.
        """

    async def current_identity(self) -> Identity | None:
        """Return the signed-in identity, if any."""


@dataclass
class IdentityExistenceChecker:
    """Answers whether an email already belongs to an account."""

    auth_provider: AuthProvider

    async def email_is_registered(self, email: str) -> bool:
        """Return True when the email has at least one sign-in method.

        Lookup failures count as "not registered" so a transient provider
        error never blocks a legitimate sign-up.
        """
        normalized = email.strip().lower()
        try:
            methods = await self.auth_provider.list_sign_in_methods(normalized)
        except Exception:
            _logger.warning(
                "Sign-in method lookup failed, treating email as new: email=%s",
                normalized,
                exc_info=True,
            )
            return False
        return bool(methods)
