"""Comment schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, field_validator

from lingua_forum.db.time import as_utc


class CommentRecord(BaseModel):
    """Transient copy of a stored comment."""

    id: str
    post_id: str
    content: str
    author_id: str
    author_name: str
    created_at: datetime | None = None

    @field_validator("created_at")
    @classmethod
    def _utc(cls, value: datetime | None) -> datetime | None:
        return as_utc(value)

    model_config = ConfigDict(from_attributes=True)
