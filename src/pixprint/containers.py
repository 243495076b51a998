"""Dependency container wiring for the application."""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from pixprint.adapters.supabase_auth_provider import SupabaseAuthProvider
from pixprint.adapters.supabase_document_store import SupabaseDocumentStore
from pixprint.config import Settings
from pixprint.services.accounts import AccountProvisioner
from pixprint.services.auth_state import AuthSession, AuthStateChannel
from pixprint.services.conversion import ConversionOrchestrator
from pixprint.services.documents import DocumentStore
from pixprint.services.identity import AuthProvider, IdentityExistenceChecker
from pixprint.services.migration import GuestMigrationEngine


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    auth_provider: AuthProvider
    document_store: DocumentStore
    existence_checker: IdentityExistenceChecker
    provisioner: AccountProvisioner
    migration_engine: GuestMigrationEngine
    auth_state_channel: AuthStateChannel
    open_resources: Callable[[], Awaitable[None]]
    close_resources: Callable[[], Awaitable[None]]

    def new_orchestrator(self) -> ConversionOrchestrator:
        """Create an orchestrator for a single sign-up attempt."""
        return ConversionOrchestrator(
            existence_checker=self.existence_checker,
            provisioner=self.provisioner,
            migration_engine=self.migration_engine,
        )

    def new_auth_session(self) -> AuthSession:
        """Create a session that follows the current identity."""
        return AuthSession(
            auth_provider=self.auth_provider,
            document_store=self.document_store,
            profiles_collection=self.settings.profiles_collection,
        )


def build_services(
    settings: Settings,
    auth_provider: AuthProvider,
    document_store: DocumentStore,
) -> tuple[IdentityExistenceChecker, AccountProvisioner, GuestMigrationEngine]:
    """Create the sign-up services on top of the given collaborators."""
    existence_checker = IdentityExistenceChecker(auth_provider)
    provisioner = AccountProvisioner(
        auth_provider=auth_provider,
        document_store=document_store,
        profiles_collection=settings.profiles_collection,
    )
    migration_engine = GuestMigrationEngine(
        document_store=document_store,
        participations_collection=settings.participations_collection,
        photos_collection=settings.photos_collection,
    )
    return existence_checker, provisioner, migration_engine


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    auth_provider = SupabaseAuthProvider(supabase_client)
    document_store = SupabaseDocumentStore(supabase_client)
    existence_checker, provisioner, migration_engine = build_services(
        resolved_settings, auth_provider, document_store
    )

    auth_state_channel = AuthStateChannel()
    stop_callbacks: list[Callable[[], None]] = []

    async def open_resources() -> None:
        stop_callbacks.append(
            auth_provider.watch(auth_state_channel, asyncio.get_running_loop())
        )

    async def close_resources() -> None:
        while stop_callbacks:
            stop_callbacks.pop()()

    return AppContainer(
        settings=resolved_settings,
        auth_provider=auth_provider,
        document_store=document_store,
        existence_checker=existence_checker,
        provisioner=provisioner,
        migration_engine=migration_engine,
        auth_state_channel=auth_state_channel,
        open_resources=open_resources,
        close_resources=close_resources,
    )
