"""Service-level helpers for authoring posts, comments, bookmarks and upvotes.

Every operation takes the acting ``viewer`` explicitly; ``None`` means
nobody is signed in and the call fails with ``Unauthenticated`` before
touching the store.
"""
from __future__ import annotations

import logging

from lingua_forum.core.errors import ForumError, Unauthenticated
from lingua_forum.core.settings import settings
from lingua_forum.repositories.forum_store import ForumStore
from lingua_forum.schemas.comment import CommentRecord
from lingua_forum.schemas.post import PostDraft, PostRecord, PostUpdate
from lingua_forum.schemas.saved_post import SavedPostSnapshot
from lingua_forum.schemas.user import UserIdentity

logger = logging.getLogger(__name__)


def require_viewer(viewer: UserIdentity | None, action: str) -> UserIdentity:
    """Return ``viewer`` or raise ``Unauthenticated`` naming the attempted action."""
    if viewer is None:
        raise Unauthenticated(f"Please log in to {action}")
    return viewer


def author_name_for(viewer: UserIdentity, is_anonymous: bool) -> str:
    """Return the name stamped on content written by ``viewer``."""
    if is_anonymous or not viewer.display_name:
        return settings.anonymous_author_name
    return viewer.display_name


async def create_post(
    *,
    store: ForumStore,
    viewer: UserIdentity | None,
    draft: PostDraft,
) -> str:
    """Create a post authored by ``viewer`` and return its id.

    Tags are already normalized by ``PostDraft``; the author name becomes
    the anonymous sentinel when ``draft.is_anonymous`` is set.
    """
    author = require_viewer(viewer, "create a post")
    post_id = await store.create_post(
        author_id=author.id,
        author_name=author_name_for(author, draft.is_anonymous),
        draft=draft,
    )
    logger.info("New post %s added by %s", post_id, author.id)
    return post_id


async def update_post(
    *,
    store: ForumStore,
    viewer: UserIdentity | None,
    post_id: str,
    changes: PostUpdate,
) -> bool:
    """Edit a post owned by ``viewer``.

    Returns:
        ``True`` when the edit was stored, ``False`` when the post is gone,
        belongs to someone else or the store failed.
    """
    author = require_viewer(viewer, "update a post")
    fields = changes.model_dump(exclude_unset=True)
    if "is_anonymous" in fields and fields["is_anonymous"] is not None:
        fields["author_name"] = author_name_for(author, fields["is_anonymous"])
    fields = {key: value for key, value in fields.items() if value is not None}
    try:
        await store.update_post(post_id, author.id, fields)
    except ForumError as err:
        logger.warning("Error updating post %s: %s", post_id, err)
        return False
    logger.info("Post %s updated", post_id)
    return True


async def delete_post(
    *,
    store: ForumStore,
    viewer: UserIdentity | None,
    post_id: str,
) -> bool:
    """Delete a post owned by ``viewer``; ``False`` on any refusal or failure."""
    author = require_viewer(viewer, "delete a post")
    try:
        await store.delete_post(post_id, author.id)
    except ForumError as err:
        logger.warning("Error deleting post %s: %s", post_id, err)
        return False
    logger.info("Post %s deleted", post_id)
    return True


async def list_my_posts(*, store: ForumStore, viewer: UserIdentity | None) -> list[PostRecord]:
    """Return the viewer's own posts, newest first."""
    author = require_viewer(viewer, "view your posts")
    return await store.list_posts_by_author(author.id)


async def add_comment(
    *,
    store: ForumStore,
    viewer: UserIdentity | None,
    post_id: str,
    content: str,
    is_anonymous: bool = False,
) -> str:
    """Append a comment to ``post_id`` and return the comment id."""
    author = require_viewer(viewer, "add a comment")
    text = content.strip()
    if not text:
        raise ValueError("Comment cannot be empty")
    comment_id = await store.add_comment(
        post_id,
        author_id=author.id,
        author_name=author_name_for(author, is_anonymous),
        content=text,
    )
    logger.info("Comment %s added to post %s", comment_id, post_id)
    return comment_id


async def load_comments(*, store: ForumStore, post_id: str) -> list[CommentRecord]:
    """Return the comments under ``post_id``, oldest first."""
    return await store.list_comments_for_post(post_id)


async def save_post(*, store: ForumStore, viewer: UserIdentity | None, post: PostRecord) -> None:
    """Bookmark ``post`` on the viewer's dashboard."""
    user = require_viewer(viewer, "save posts")
    await store.set_saved_post(
        user.id,
        post.id,
        SavedPostSnapshot(title=post.title, author_name=post.author_name),
    )
    logger.info("Post %s saved to dashboard of %s", post.id, user.id)


async def unsave_post(*, store: ForumStore, viewer: UserIdentity | None, post_id: str) -> None:
    """Remove ``post_id`` from the viewer's dashboard."""
    user = require_viewer(viewer, "unsave posts")
    await store.delete_saved_post(user.id, post_id)
    logger.info("Post %s removed from dashboard of %s", post_id, user.id)


async def upvote_post(*, store: ForumStore, viewer: UserIdentity | None, post_id: str) -> None:
    """Write the viewer's upvote marker, then bump the stored counter.

    The two writes are separate remote calls; if the second fails the
    marker stays behind and the error propagates to the caller.
    """
    user = require_viewer(viewer, "upvote posts")
    await store.set_upvote(post_id, user.id)
    await store.increment_upvote_count(post_id, 1)
    logger.info("Post %s upvoted by %s", post_id, user.id)


async def remove_upvote(*, store: ForumStore, viewer: UserIdentity | None, post_id: str) -> None:
    """Remove the viewer's upvote marker and decrement the counter, never below zero.

    A viewer without a marker is a no-op. When the stored counter is
    already zero only the marker is deleted.
    """
    user = require_viewer(viewer, "remove an upvote")
    if not await store.has_upvote(post_id, user.id):
        logger.info("User %s hasn't upvoted post %s", user.id, post_id)
        return

    current = await store.get_upvote_count(post_id)
    await store.delete_upvote(post_id, user.id)
    if current > 0:
        await store.increment_upvote_count(post_id, -1)
        logger.info("Upvote removed from post %s by %s", post_id, user.id)
    else:
        logger.info("Upvote marker removed from post %s but count was already 0", post_id)
