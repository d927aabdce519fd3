"""Per-user upvote markers on posts."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from lingua_forum.db.session import Base
from lingua_forum.db.time import utcnow

if TYPE_CHECKING:
    from .post import Post


class Upvote(Base):
    """Existence of a row means the user has upvoted the post.

    Written independently of ``Post.upvotes``; the two may drift.
    """

    __tablename__ = "post_upvote"

    post_id: Mapped[str] = mapped_column(
        String(40),
        ForeignKey("post.id", ondelete="CASCADE"),
        primary_key=True,
    )
    # Composite primary key prevents duplicate upvotes from the same user.
    user_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    upvoted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    post: Mapped[Post] = relationship("Post", back_populates="upvote_records")
