"""Bookmarks on a user's dashboard."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from lingua_forum.db.session import Base
from lingua_forum.db.time import utcnow


class SavedPost(Base):
    """Denormalized snapshot of a saved post.

    ``post_id`` is a weak reference: the post may be deleted while the
    bookmark stays.
    """

    __tablename__ = "saved_post"

    user_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    post_id: Mapped[str] = mapped_column(String(40), primary_key=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    author_name: Mapped[str] = mapped_column(Text, nullable=False)
    saved_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, index=True
    )
