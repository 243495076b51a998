"""Domain models for guest contributions and their migration."""

from dataclasses import dataclass, field
from datetime import datetime

from pixprint.domain.documents import DocumentSnapshot


def _optional_str(value: object) -> str | None:
    return str(value) if value else None


def _parse_timestamp(value: object) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value:
        return datetime.fromisoformat(value)
    return None


@dataclass(frozen=True)
class GuestParticipation:
    """Membership of a guest (or a claimed identity) in one event."""

    id: str
    event_id: str
    username: str
    user_id: str | None
    converted_from_guest: bool = False
    converted_at: datetime | None = None

    @classmethod
    def from_snapshot(cls, snapshot: DocumentSnapshot) -> "GuestParticipation":
        data = snapshot.data
        return cls(
            id=snapshot.id,
            event_id=str(data.get("event_id", "")),
            username=str(data.get("username", "")),
            user_id=_optional_str(data.get("user_id")),
            converted_from_guest=bool(data.get("converted_from_guest", False)),
            converted_at=_parse_timestamp(data.get("converted_at")),
        )

    @property
    def is_claimed(self) -> bool:
        return bool(self.user_id)


@dataclass(frozen=True)
class PhotoRecord:
    """One uploaded event photo.

    Ownership is either claimed (``user_id`` set, ``is_guest`` false) or
    guest-pending (``is_guest`` true with a ``guest_username``), never both.
    """

    id: str
    event_id: str
    user_id: str | None
    guest_username: str | None
    is_guest: bool
    converted_from_guest: bool = False
    converted_at: datetime | None = None

    @classmethod
    def from_snapshot(cls, snapshot: DocumentSnapshot) -> "PhotoRecord":
        data = snapshot.data
        return cls(
            id=snapshot.id,
            event_id=str(data.get("event_id", "")),
            user_id=_optional_str(data.get("user_id")),
            guest_username=_optional_str(data.get("guest_username")),
            is_guest=bool(data.get("is_guest", False)),
            converted_from_guest=bool(data.get("converted_from_guest", False)),
            converted_at=_parse_timestamp(data.get("converted_at")),
        )

    @property
    def is_guest_pending(self) -> bool:
        return self.is_guest and bool(self.guest_username) and not self.user_id

    @property
    def is_claimed(self) -> bool:
        return not self.is_guest and bool(self.user_id)


@dataclass
class MigrationReport:
    """Outcome of moving a guest's records onto a new identity."""

    membership_updated: bool = False
    photos_matched: int = 0
    photos_updated: bool = False
    photos_confirmed: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        return not self.errors

    def as_dict(self) -> dict[str, object]:
        return {
            "membership_updated": self.membership_updated,
            "photos_matched": self.photos_matched,
            "photos_updated": self.photos_updated,
            "photos_confirmed": self.photos_confirmed,
            "errors": list(self.errors),
        }
