"""Domain models for PixPrint accounts."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class SignUpForm:
    """Raw sign-up fields as entered by the user."""

    first_name: str
    last_name: str
    email: str
    address: str
    password: str
    confirm_password: str

    @property
    def normalized_email(self) -> str:
        return self.email.strip().lower()

    @property
    def display_name(self) -> str:
        return f"{self.first_name.strip()} {self.last_name.strip()}"


@dataclass(frozen=True)
class GuestContext:
    """Identifies the guest a sign-up converts, scoped to one event."""

    event_id: str
    username: str


@dataclass(frozen=True)
class Identity:
    """A permanent, registered account."""

    id: str
    email: str
    display_name: str
    address: str
    created_at: datetime
    profile_completed: bool = True
    converted_from_guest: bool = False
    guest_username: str | None = None
