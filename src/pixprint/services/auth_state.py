"""Explicit auth-state notifications and the session that follows them."""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from pixprint.domain.models import Identity
from pixprint.services.documents import DocumentStore
from pixprint.services.identity import AuthProvider

_logger = logging.getLogger(__name__)

AuthListener = Callable[[Identity | None], Awaitable[None]]


@dataclass
class Subscription:
    """Handle returned by ``AuthStateChannel.subscribe``."""

    channel: "AuthStateChannel"
    listener: AuthListener
    active: bool = True

    def unsubscribe(self) -> None:
        """Stop receiving notifications. Safe to call more than once."""
        if self.active:
            self.channel._remove(self.listener)
            self.active = False

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *_exc_info: object) -> None:
        self.unsubscribe()


class AuthStateChannel:
    """Delivers "current identity changed" notifications to subscribers."""

    def __init__(self) -> None:
        self._listeners: list[AuthListener] = []

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def subscribe(self, listener: AuthListener) -> Subscription:
        """Register a listener until the returned subscription is closed."""
        self._listeners.append(listener)
        return Subscription(channel=self, listener=listener)

    async def publish(self, identity: Identity | None) -> None:
        """Notify every current listener, in subscription order."""
        for listener in list(self._listeners):
            try:
                await listener(identity)
            except Exception:
                _logger.exception("Auth state listener failed")

    def _remove(self, listener: AuthListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)


@dataclass
class AuthSession:
    """Current identity and profile, kept fresh while attached to a channel."""

    auth_provider: AuthProvider
    document_store: DocumentStore
    profiles_collection: str = "user_tbl"
    identity: Identity | None = field(default=None, init=False)
    profile: dict[str, object] | None = field(default=None, init=False)
    is_loading: bool = field(default=True, init=False)
    just_created_account: bool = field(default=False, init=False)
    _subscription: Subscription | None = field(default=None, init=False, repr=False)

    async def attach(self, channel: AuthStateChannel) -> Subscription:
        """Subscribe to ``channel`` and load the currently signed-in identity."""
        self.detach()
        self._subscription = channel.subscribe(self.handle_change)
        try:
            current = await self.auth_provider.current_identity()
        except Exception:
            _logger.exception("Failed to read current identity")
            current = None
        await self.handle_change(current)
        return self._subscription

    def detach(self) -> None:
        """Drop the channel subscription, if any."""
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    async def handle_change(self, identity: Identity | None) -> None:
        """Record the new identity and load its profile document."""
        self.identity = identity
        if identity is None:
            self.profile = None
        else:
            try:
                snapshot = await self.document_store.get_document(
                    self.profiles_collection, identity.id
                )
            except Exception:
                _logger.exception(
                    "Error fetching profile: identity_id=%s", identity.id
                )
            else:
                if snapshot is None:
                    _logger.info("No profile document: identity_id=%s", identity.id)
                self.profile = snapshot.data if snapshot else None
        self.is_loading = False

    def mark_account_created(self) -> None:
        self.just_created_account = True

    def clear_account_created_flag(self) -> None:
        self.just_created_account = False
