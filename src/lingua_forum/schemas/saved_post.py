"""Saved-post (dashboard bookmark) schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, field_validator

from lingua_forum.db.time import as_utc


class SavedPostSnapshot(BaseModel):
    """Fields copied from the post at the moment it was saved."""

    title: str
    author_name: str


class SavedPostRecord(BaseModel):
    """Transient copy of a stored bookmark."""

    user_id: str
    post_id: str
    title: str
    author_name: str
    saved_at: datetime

    @field_validator("saved_at")
    @classmethod
    def _utc(cls, value: datetime) -> datetime:
        return as_utc(value)  # type: ignore[return-value]

    model_config = ConfigDict(from_attributes=True)
