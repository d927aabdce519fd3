"""Comments appended beneath a post."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from lingua_forum.db.ids import new_document_id
from lingua_forum.db.session import Base
from lingua_forum.db.time import utcnow

if TYPE_CHECKING:
    from .post import Post


class Comment(Base):
    """Append-only comment belonging to exactly one post."""

    __tablename__ = "post_comment"

    id: Mapped[str] = mapped_column(String(40), primary_key=True, default=new_document_id)
    post_id: Mapped[str] = mapped_column(
        String(40),
        ForeignKey("post.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    author_id: Mapped[str] = mapped_column(String(128), nullable=False)
    author_name: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, default=utcnow
    )

    post: Mapped[Post] = relationship("Post", back_populates="comments")
