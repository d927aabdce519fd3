# src/lingua_forum/schemas/post.py
"""Post-related Pydantic schemas."""

from collections.abc import Iterable
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from lingua_forum.db.time import as_utc


def normalize_tag(tag: str) -> str:
    """Lowercase and trim a tag."""
    return tag.strip().lower()


def normalize_tags(tags: Iterable[str]) -> list[str]:
    """Normalize tags, dropping blanks and repeats while keeping first-seen order."""
    seen: list[str] = []
    for tag in tags:
        normalized = normalize_tag(tag)
        if normalized and normalized not in seen:
            seen.append(normalized)
    return seen


class PostDraft(BaseModel):
    """Schema for authoring a new post."""

    title: str = Field(..., min_length=1, max_length=300)
    content: str = Field(..., min_length=1)
    image_url: str | None = Field(None, description="Optional image link")
    tags: list[str] = Field(default_factory=list)
    is_anonymous: bool = False

    @field_validator("tags")
    @classmethod
    def _normalize(cls, value: list[str]) -> list[str]:
        return normalize_tags(value)


class PostUpdate(BaseModel):
    """Partial edit of a post; unset fields are left untouched."""

    title: str | None = Field(None, min_length=1, max_length=300)
    content: str | None = Field(None, min_length=1)
    image_url: str | None = None
    tags: list[str] | None = None
    is_anonymous: bool | None = None

    @field_validator("tags")
    @classmethod
    def _normalize(cls, value: list[str] | None) -> list[str] | None:
        return None if value is None else normalize_tags(value)


class PostRecord(BaseModel):
    """Transient copy of a stored post."""

    id: str
    title: str
    content: str
    image_url: str = ""
    tags: list[str] = Field(default_factory=list)
    author_id: str
    author_name: str
    is_anonymous: bool = False
    upvotes: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @model_validator(mode="before")
    @classmethod
    def _from_document(cls, data: object) -> object:
        if not isinstance(data, dict):
            extracted: dict[str, object | None] = {}
            for field_name in cls.model_fields:
                extracted[field_name] = getattr(data, field_name, None)
            data = extracted
        else:
            data = dict(data)

        # Missing counters and links read back as their empty values.
        if data.get("upvotes") is None:
            data["upvotes"] = 0
        if data.get("image_url") is None:
            data["image_url"] = ""
        if data.get("tags") is None:
            data["tags"] = []
        for stamp in ("created_at", "updated_at"):
            if isinstance(data.get(stamp), datetime):
                data[stamp] = as_utc(data[stamp])
        return data

    model_config = ConfigDict(from_attributes=True)
