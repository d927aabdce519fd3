"""Saved-post dashboard: bookmarks joined back to their live posts."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from lingua_forum.core.errors import ForumError, ToggleInProgress
from lingua_forum.repositories.forum_store import ForumStore
from lingua_forum.schemas.post import PostRecord
from lingua_forum.schemas.user import UserIdentity
from lingua_forum.services.post_service import require_viewer, save_post, unsave_post

logger = logging.getLogger(__name__)

SAVED_LOAD_ERROR_MESSAGE = "Failed to load saved posts. Please try again."


async def load_saved_posts(store: ForumStore, viewer: UserIdentity | None) -> list[PostRecord]:
    """Return the live posts behind the viewer's bookmarks, most recently saved first.

    Bookmarks whose post has since been deleted, or whose post could not
    be read, are skipped. A failure listing the bookmarks propagates.
    """
    user = require_viewer(viewer, "view saved posts")
    saved = await store.list_saved_posts(user.id)
    results = await asyncio.gather(
        *(store.get_post(entry.post_id) for entry in saved),
        return_exceptions=True,
    )

    posts: list[PostRecord] = []
    for entry, result in zip(saved, results):
        if isinstance(result, ForumError):
            logger.warning("Skipping saved post %s: %s", entry.post_id, result)
            continue
        if isinstance(result, BaseException):
            raise result
        if result is not None:
            posts.append(result)
    return posts


class SavedPostsView:
    """The viewer's saved posts as shown on the dashboard."""

    def __init__(self, store: ForumStore, viewer: UserIdentity | None) -> None:
        self.store = store
        self.viewer = viewer
        self.posts: list[PostRecord] = []
        self.error = ""
        self.loading = False

    async def load(self) -> list[PostRecord]:
        """Reload the saved posts; a store failure keeps the previous list and sets ``error``."""
        require_viewer(self.viewer, "view saved posts")
        self.loading = True
        self.error = ""
        try:
            self.posts = await load_saved_posts(self.store, self.viewer)
        except ForumError as err:
            logger.warning("Error loading saved posts: %s", err)
            self.error = SAVED_LOAD_ERROR_MESSAGE
        finally:
            self.loading = False
        return self.posts

    def remove(self, post: PostRecord) -> None:
        """Drop an unsaved post from the list without reloading."""
        self.posts = [saved for saved in self.posts if saved.id != post.id]

    def save_control(self, post: PostRecord) -> SaveControl:
        return SaveControl(
            self.store,
            post,
            self.viewer,
            in_saved_view=True,
            on_unsaved=self.remove,
        )


class SaveControl:
    """Bookmark toggle for one post as seen by one viewer."""

    def __init__(
        self,
        store: ForumStore,
        post: PostRecord,
        viewer: UserIdentity | None,
        *,
        in_saved_view: bool = False,
        on_unsaved: Callable[[PostRecord], None] | None = None,
    ) -> None:
        self.store = store
        self.post = post
        self.viewer = viewer
        self.in_saved_view = in_saved_view
        self.is_saved = in_saved_view
        self.busy = False
        self.last_error: ForumError | None = None
        self._on_unsaved = on_unsaved

    async def load(self) -> bool:
        """Read whether the post is bookmarked; the saved view already knows it is."""
        if self.viewer is None or self.in_saved_view:
            return self.is_saved
        try:
            self.is_saved = await self.store.is_post_saved(self.viewer.id, self.post.id)
        except ForumError as err:
            logger.warning("Error checking saved status for post %s: %s", self.post.id, err)
            self.last_error = err
        return self.is_saved

    async def toggle(self) -> bool:
        """Save or unsave the post and return the new saved flag.

        A store failure leaves ``is_saved`` unchanged and is recorded as
        ``last_error``.

        Raises:
            ToggleInProgress: If a previous toggle has not settled yet.
            Unauthenticated: If no viewer is signed in.
        """
        if self.busy:
            raise ToggleInProgress("Save already in progress")
        require_viewer(self.viewer, "save posts")

        self.busy = True
        self.last_error = None
        try:
            if self.is_saved:
                await unsave_post(store=self.store, viewer=self.viewer, post_id=self.post.id)
                self.is_saved = False
                if self.in_saved_view and self._on_unsaved is not None:
                    self._on_unsaved(self.post)
            else:
                await save_post(store=self.store, viewer=self.viewer, post=self.post)
                self.is_saved = True
        except ForumError as err:
            logger.warning("Error toggling saved post %s: %s", self.post.id, err)
            self.last_error = err
        finally:
            self.busy = False
        return self.is_saved
