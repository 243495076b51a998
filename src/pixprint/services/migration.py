"""Moves a guest's event contributions onto a newly registered identity."""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime

from pixprint.domain.guests import GuestParticipation, MigrationReport, PhotoRecord
from pixprint.services.documents import DocumentStore

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass(frozen=True)
class _StepResult:
    updated: bool = False
    matched: int = 0
    confirmed: int = 0
    error: str | None = None


@dataclass
class GuestMigrationEngine:
    """Re-points guest membership and photo records at a new identity.

    Runs after the identity already exists, so it never raises: every
    failure is recorded on the returned report instead.
    """

    document_store: DocumentStore
    participations_collection: str = "joined_tbl"
    photos_collection: str = "photos_tbl"
    clock: Callable[[], datetime] = field(default=_utcnow)

    async def migrate(
        self, identity_id: str, guest_username: str, event_id: str
    ) -> MigrationReport:
        """Claim the guest's records for ``event_id`` on behalf of the identity."""
        converted_at = self.clock().isoformat()
        membership, photos = await asyncio.gather(
            self._claim_membership(identity_id, guest_username, event_id, converted_at),
            self._claim_photos(identity_id, guest_username, event_id, converted_at),
        )
        report = MigrationReport(
            membership_updated=membership.updated,
            photos_matched=photos.matched,
            photos_updated=photos.updated,
            photos_confirmed=photos.confirmed,
            errors=[step.error for step in (membership, photos) if step.error],
        )
        _logger.info(
            "Guest migration: identity_id=%s event_id=%s username=%s report=%s",
            identity_id,
            event_id,
            guest_username,
            report.as_dict(),
        )
        return report

    async def _claim_membership(
        self,
        identity_id: str,
        guest_username: str,
        event_id: str,
        converted_at: str,
    ) -> _StepResult:
        try:
            rows = await self.document_store.query_documents(
                self.participations_collection,
                {"event_id": event_id, "username": guest_username},
            )
        except Exception:
            _logger.exception(
                "Membership query failed: event_id=%s username=%s",
                event_id,
                guest_username,
            )
            return _StepResult(error="membership_query_failed")

        updated = False
        for row in rows:
            participation = GuestParticipation.from_snapshot(row)
            if participation.is_claimed:
                if participation.user_id != identity_id:
                    _logger.warning(
                        "Membership already claimed by another identity: "
                        "membership_id=%s",
                        participation.id,
                    )
                continue
            try:
                applied = await self.document_store.update_document(
                    row.ref,
                    {
                        "user_id": identity_id,
                        "converted_from_guest": True,
                        "converted_at": converted_at,
                    },
                    only_if_absent="user_id",
                )
            except Exception:
                _logger.exception(
                    "Membership update failed: membership_id=%s", participation.id
                )
                return _StepResult(updated=updated, error="membership_update_failed")
            updated = updated or applied
        return _StepResult(updated=updated, matched=len(rows))

    async def _claim_photos(
        self,
        identity_id: str,
        guest_username: str,
        event_id: str,
        converted_at: str,
    ) -> _StepResult:
        try:
            rows = await self.document_store.query_documents(
                self.photos_collection,
                {
                    "event_id": event_id,
                    "guest_username": guest_username,
                    "is_guest": True,
                },
            )
        except Exception:
            _logger.exception(
                "Photo query failed: event_id=%s username=%s",
                event_id,
                guest_username,
            )
            return _StepResult(error="photo_query_failed")

        pending = []
        for row in rows:
            photo = PhotoRecord.from_snapshot(row)
            if photo.is_guest_pending:
                pending.append(row.ref)
            else:
                _logger.warning(
                    "Guest photo already has an owner, skipping: photo_id=%s",
                    photo.id,
                )
        if not pending:
            return _StepResult(matched=len(rows))

        batch = self.document_store.batch()
        for ref in pending:
            # Photos claimed by another conversion since the query stay as they are.
            batch.update(
                ref,
                {
                    "user_id": identity_id,
                    "is_guest": False,
                    "converted_from_guest": True,
                    "converted_at": converted_at,
                },
                only_if={"is_guest": True, "user_id": None},
            )
        try:
            confirmed = await batch.commit()
        except Exception:
            _logger.exception(
                "Photo batch failed: event_id=%s intended=%s", event_id, len(pending)
            )
            return _StepResult(matched=len(rows), error="photo_batch_failed")
        if confirmed < len(pending):
            _logger.warning(
                "Photo batch confirmed fewer rows than intended: event_id=%s "
                "intended=%s confirmed=%s",
                event_id,
                len(pending),
                confirmed,
            )
        return _StepResult(
            updated=confirmed > 0, matched=len(rows), confirmed=confirmed
        )
