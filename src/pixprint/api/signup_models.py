"""Pydantic models for sign-up requests."""

from pydantic import BaseModel, Field

from pixprint.domain.models import GuestContext, SignUpForm


class GuestPayload(BaseModel):
    """The guest identity being converted."""

    event_id: str = Field(min_length=1)
    username: str = Field(min_length=1)

    def to_context(self) -> GuestContext:
        return GuestContext(event_id=self.event_id, username=self.username)


class SignUpRequest(BaseModel):
    """Sign-up form payload."""

    attempt_id: str | None = None
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    address: str = ""
    password: str = ""
    confirm_password: str = ""
    guest: GuestPayload | None = None

    def to_form(self) -> SignUpForm:
        return SignUpForm(
            first_name=self.first_name,
            last_name=self.last_name,
            email=self.email,
            address=self.address,
            password=self.password,
            confirm_password=self.confirm_password,
        )
