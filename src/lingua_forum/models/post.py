"""SQLAlchemy models for posts and their tags."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from lingua_forum.db.ids import new_document_id
from lingua_forum.db.session import Base
from lingua_forum.db.time import utcnow

if TYPE_CHECKING:
    from .comment import Comment
    from .upvote import Upvote


class Post(Base):
    """Primary content entity authored by users and shown in the feed."""

    __tablename__ = "post"

    id: Mapped[str] = mapped_column(String(40), primary_key=True, default=new_document_id)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    image_url: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # Identity provider uid; the provider owns the account, so no foreign key.
    author_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    author_name: Mapped[str] = mapped_column(Text, nullable=False)
    is_anonymous: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Denormalized counter; kept in step with post_upvote rows on a best-effort basis.
    upvotes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, default=utcnow, index=True
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, default=utcnow
    )

    tag_links: Mapped[list[PostTag]] = relationship(
        "PostTag",
        back_populates="post",
        cascade="all, delete-orphan",
        order_by="PostTag.position",
        lazy="selectin",
    )
    comments: Mapped[list[Comment]] = relationship(
        "Comment",
        back_populates="post",
        cascade="all, delete-orphan",
    )
    upvote_records: Mapped[list[Upvote]] = relationship(
        "Upvote",
        back_populates="post",
        cascade="all, delete-orphan",
    )

    @property
    def tags(self) -> list[str]:
        """Return the post's normalized tags in authored order."""
        return [link.tag for link in self.tag_links]

    def replace_tags(self, tags: list[str]) -> None:
        """Replace the tag rows with ``tags`` (already normalized and de-duplicated)."""
        self.tag_links = [PostTag(position=index, tag=tag) for index, tag in enumerate(tags)]


class PostTag(Base):
    """One normalized tag of a post; the index backs "contains any of" lookups."""

    __tablename__ = "post_tag"
    __table_args__ = (Index("ix_post_tag_tag", "tag"),)

    post_id: Mapped[str] = mapped_column(
        String(40),
        ForeignKey("post.id", ondelete="CASCADE"),
        primary_key=True,
    )
    position: Mapped[int] = mapped_column(Integer, primary_key=True)
    tag: Mapped[str] = mapped_column(String(64), nullable=False)

    post: Mapped[Post] = relationship("Post", back_populates="tag_links")
