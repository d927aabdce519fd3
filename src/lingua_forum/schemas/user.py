"""Identity schemas."""

from pydantic import BaseModel, ConfigDict


class UserIdentity(BaseModel):
    """The signed-in user as seen by every service call."""

    id: str
    display_name: str | None = None

    model_config = ConfigDict(frozen=True)


class AuthSession(BaseModel):
    """Result of a successful sign-in."""

    user: UserIdentity
    access_token: str
    token_type: str = "bearer"
