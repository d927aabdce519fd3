"""Data access facade over the forum's document store.

Every public coroutine is one independent remote call: it opens its own
session, commits on success and closes. Nothing spans two calls, so a
caller that needs two writes (an upvote marker plus the counter) gets no
atomicity between them.
"""
from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime
from typing import Any

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from lingua_forum.core.errors import NotFound, Unauthorized
from lingua_forum.db.session import SessionLocal, unit_of_work
from lingua_forum.db.time import utcnow
from lingua_forum.models import Comment, Post, PostTag, SavedPost, Upvote
from lingua_forum.schemas.comment import CommentRecord
from lingua_forum.schemas.post import PostDraft, PostRecord, normalize_tags
from lingua_forum.schemas.saved_post import SavedPostRecord, SavedPostSnapshot

__all__ = ["ForumStore"]

logger = logging.getLogger(__name__)

_EDITABLE_FIELDS = ("title", "content", "image_url", "author_name", "is_anonymous")


def _comment_sort_key(comment: CommentRecord) -> tuple[bool, datetime]:
    # Oldest first; comments without a timestamp go last.
    return (comment.created_at is None, comment.created_at or datetime.min)


class ForumStore:
    """Record-level CRUD and subcollection queries for posts, comments, upvotes and bookmarks."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
        """Initialize the store with a session factory (defaults to the app engine)."""
        self._session_factory = session_factory or SessionLocal

    @staticmethod
    async def _require_post(session: AsyncSession, post_id: str) -> Post:
        post = await session.get(Post, post_id)
        if post is None:
            raise NotFound(f"Post {post_id} not found")
        return post

    # Posts -----------------------------------------------------------------

    async def get_post(self, post_id: str) -> PostRecord | None:
        """Return a post by identifier, or ``None`` if it no longer exists."""
        async with unit_of_work("get_post", self._session_factory) as session:
            post = (await session.scalars(select(Post).where(Post.id == post_id))).first()
            return PostRecord.model_validate(post) if post is not None else None

    async def list_posts(self, limit: int) -> list[PostRecord]:
        """Return up to ``limit`` posts, newest first."""
        async with unit_of_work("list_posts", self._session_factory) as session:
            result = await session.scalars(
                select(Post).order_by(Post.created_at.desc()).limit(limit)
            )
            return [PostRecord.model_validate(post) for post in result]

    async def list_posts_by_tags(self, tags: Sequence[str], limit: int) -> list[PostRecord]:
        """Return up to ``limit`` posts carrying any of ``tags``.

        Tags are normalized before matching. The result is a union of the
        per-tag matches and comes back in no particular order.
        """
        normalized = normalize_tags(tags)
        if not normalized:
            return []
        logger.debug("Querying posts with any of tags %s", normalized)
        tagged = select(PostTag.post_id).where(PostTag.tag.in_(normalized))
        async with unit_of_work("list_posts_by_tags", self._session_factory) as session:
            result = await session.scalars(select(Post).where(Post.id.in_(tagged)).limit(limit))
            return [PostRecord.model_validate(post) for post in result]

    async def list_posts_by_author(self, author_id: str) -> list[PostRecord]:
        """Return every post written by ``author_id``, newest first."""
        async with unit_of_work("list_posts_by_author", self._session_factory) as session:
            result = await session.scalars(
                select(Post)
                .where(Post.author_id == author_id)
                .order_by(Post.created_at.desc())
            )
            return [PostRecord.model_validate(post) for post in result]

    async def list_all_tags(self) -> list[str]:
        """Return every distinct tag in use, sorted."""
        async with unit_of_work("list_all_tags", self._session_factory) as session:
            result = await session.scalars(select(PostTag.tag).distinct())
            return sorted({tag.lower() for tag in result})

    async def create_post(self, *, author_id: str, author_name: str, draft: PostDraft) -> str:
        """Insert a new post and return its store-assigned id."""
        async with unit_of_work("create_post", self._session_factory) as session:
            now = utcnow()
            post = Post(
                title=draft.title,
                content=draft.content,
                image_url=draft.image_url or "",
                author_id=author_id,
                author_name=author_name,
                is_anonymous=draft.is_anonymous,
                upvotes=0,
                created_at=now,
                updated_at=now,
            )
            post.replace_tags(normalize_tags(draft.tags))
            session.add(post)
            await session.flush()
            return post.id

    async def update_post(self, post_id: str, caller_id: str, changes: dict[str, Any]) -> bool:
        """Apply a partial update to a post owned by ``caller_id``.

        Raises:
            NotFound: If the post no longer exists.
            Unauthorized: If ``caller_id`` is not the post's author.
        """
        async with unit_of_work("update_post", self._session_factory) as session:
            post = await self._require_post(session, post_id)
            if post.author_id != caller_id:
                raise Unauthorized("Only the author may edit this post")
            for field_name in _EDITABLE_FIELDS:
                if field_name in changes:
                    setattr(post, field_name, changes[field_name])
            if "tags" in changes:
                post.tag_links.clear()
                await session.flush()
                post.replace_tags(normalize_tags(changes["tags"]))
            post.updated_at = utcnow()
            return True

    async def delete_post(self, post_id: str, caller_id: str) -> bool:
        """Delete a post owned by ``caller_id``.

        Raises:
            NotFound: If the post no longer exists.
            Unauthorized: If ``caller_id`` is not the post's author.
        """
        async with unit_of_work("delete_post", self._session_factory) as session:
            post = await self._require_post(session, post_id)
            if post.author_id != caller_id:
                raise Unauthorized("Only the author may delete this post")
            await session.delete(post)
            return True

    # Comments --------------------------------------------------------------

    async def list_comments_for_post(self, post_id: str) -> list[CommentRecord]:
        """Return a post's comments, oldest first."""
        async with unit_of_work("list_comments_for_post", self._session_factory) as session:
            result = await session.scalars(select(Comment).where(Comment.post_id == post_id))
            comments = [CommentRecord.model_validate(comment) for comment in result]
        return sorted(comments, key=_comment_sort_key)

    async def add_comment(
        self,
        post_id: str,
        *,
        author_id: str,
        author_name: str,
        content: str,
    ) -> str:
        """Append a comment to a post and return its id."""
        async with unit_of_work("add_comment", self._session_factory) as session:
            await self._require_post(session, post_id)
            comment = Comment(
                post_id=post_id,
                content=content,
                author_id=author_id,
                author_name=author_name,
                created_at=utcnow(),
            )
            session.add(comment)
            await session.flush()
            return comment.id

    # Saved posts -----------------------------------------------------------

    async def set_saved_post(self, user_id: str, post_id: str, snapshot: SavedPostSnapshot) -> None:
        """Create or overwrite the user's bookmark for ``post_id``."""
        async with unit_of_work("set_saved_post", self._session_factory) as session:
            await session.merge(
                SavedPost(
                    user_id=user_id,
                    post_id=post_id,
                    title=snapshot.title,
                    author_name=snapshot.author_name,
                    saved_at=utcnow(),
                )
            )

    async def delete_saved_post(self, user_id: str, post_id: str) -> None:
        """Remove the user's bookmark for ``post_id`` if present."""
        async with unit_of_work("delete_saved_post", self._session_factory) as session:
            await session.execute(
                delete(SavedPost).where(SavedPost.user_id == user_id, SavedPost.post_id == post_id)
            )

    async def list_saved_posts(self, user_id: str) -> list[SavedPostRecord]:
        """Return the user's bookmarks, most recently saved first."""
        async with unit_of_work("list_saved_posts", self._session_factory) as session:
            result = await session.scalars(
                select(SavedPost)
                .where(SavedPost.user_id == user_id)
                .order_by(SavedPost.saved_at.desc())
            )
            return [SavedPostRecord.model_validate(saved) for saved in result]

    async def is_post_saved(self, user_id: str, post_id: str) -> bool:
        """Return whether the user has bookmarked ``post_id``."""
        async with unit_of_work("is_post_saved", self._session_factory) as session:
            return await session.get(SavedPost, (user_id, post_id)) is not None

    # Upvotes ---------------------------------------------------------------

    async def set_upvote(self, post_id: str, user_id: str) -> None:
        """Write the user's upvote marker on a post."""
        async with unit_of_work("set_upvote", self._session_factory) as session:
            await self._require_post(session, post_id)
            await session.merge(Upvote(post_id=post_id, user_id=user_id, upvoted_at=utcnow()))

    async def delete_upvote(self, post_id: str, user_id: str) -> None:
        """Remove the user's upvote marker if present."""
        async with unit_of_work("delete_upvote", self._session_factory) as session:
            await session.execute(
                delete(Upvote).where(Upvote.post_id == post_id, Upvote.user_id == user_id)
            )

    async def has_upvote(self, post_id: str, user_id: str) -> bool:
        """Return whether the user's upvote marker exists."""
        async with unit_of_work("has_upvote", self._session_factory) as session:
            return await session.get(Upvote, (post_id, user_id)) is not None

    async def increment_upvote_count(self, post_id: str, delta: int) -> None:
        """Add ``delta`` to the stored counter in a single server-side update.

        Raises:
            NotFound: If the post no longer exists.
        """
        async with unit_of_work("increment_upvote_count", self._session_factory) as session:
            result = await session.execute(
                update(Post)
                .where(Post.id == post_id)
                .values(upvotes=Post.upvotes + delta)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise NotFound(f"Post {post_id} not found")

    async def get_upvote_count(self, post_id: str) -> int:
        """Return the stored upvote counter (may be negative if it has drifted).

        Raises:
            NotFound: If the post no longer exists.
        """
        async with unit_of_work("get_upvote_count", self._session_factory) as session:
            count = await session.scalar(select(Post.upvotes).where(Post.id == post_id))
            if count is None and await session.get(Post, post_id) is None:
                raise NotFound(f"Post {post_id} not found")
            return int(count or 0)
