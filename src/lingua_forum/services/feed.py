"""Home feed: tag-driven retrieval followed by client-side filtering and sorting.

The store cannot combine a "contains any of these tags" filter with an
ordering, so retrieval only decides *which* posts come back and the pure
composition stage decides what is shown and in which order.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Sequence
from datetime import UTC, datetime
from enum import Enum

from lingua_forum.core.errors import ForumError
from lingua_forum.core.settings import settings
from lingua_forum.repositories.forum_store import ForumStore
from lingua_forum.schemas.post import PostRecord, normalize_tag

logger = logging.getLogger(__name__)

LOAD_ERROR_MESSAGE = "Failed to load posts. Please try again."

_OLDEST = datetime.min.replace(tzinfo=UTC)


class SortKey(str, Enum):
    """Feed orderings."""

    DATE = "date"
    UPVOTES = "upvotes"


class TagFilterSet:
    """Ordered, de-duplicated set of normalized tags narrowing the feed."""

    def __init__(self, tags: Iterable[str] = ()) -> None:
        self._tags: list[str] = []
        for tag in tags:
            self.add(tag)

    def add(self, tag: str) -> bool:
        """Append ``tag`` unless it is blank or already present; return whether it was added."""
        normalized = normalize_tag(tag)
        if not normalized or normalized in self._tags:
            return False
        self._tags.append(normalized)
        return True

    def remove_at(self, index: int) -> str:
        """Remove and return the tag at ``index``."""
        return self._tags.pop(index)

    def clear(self) -> None:
        self._tags.clear()

    def as_list(self) -> list[str]:
        return list(self._tags)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._tags))

    def __len__(self) -> int:
        return len(self._tags)

    def __contains__(self, tag: object) -> bool:
        return isinstance(tag, str) and normalize_tag(tag) in self._tags

    def __repr__(self) -> str:
        return f"TagFilterSet({self._tags!r})"


def _matches_search(post: PostRecord, needle: str) -> bool:
    haystacks = [post.title, post.content, post.author_name, *post.tags]
    return any(needle in (text or "").lower() for text in haystacks)


def filter_posts(posts: Iterable[PostRecord], search_term: str | None) -> list[PostRecord]:
    """Keep posts whose title, content, author name or any tag contains ``search_term``.

    Matching is a case-insensitive substring test on the term as typed,
    surrounding spaces included. A blank term keeps everything.
    """
    if not (search_term or "").strip():
        return list(posts)
    needle = (search_term or "").lower()
    return [post for post in posts if _matches_search(post, needle)]


def sort_posts(posts: Iterable[PostRecord], sort_key: SortKey | str = SortKey.DATE) -> list[PostRecord]:
    """Return ``posts`` ordered by ``sort_key``, both orderings descending.

    The sort is stable: posts with equal keys keep their retrieval order.
    Posts without a creation time sort after every dated post.
    """
    key = SortKey(sort_key)
    if key is SortKey.UPVOTES:
        return sorted(posts, key=lambda post: post.upvotes or 0, reverse=True)
    return sorted(posts, key=lambda post: post.created_at or _OLDEST, reverse=True)


def compose_feed(
    posts: Sequence[PostRecord],
    tag_filters: Iterable[str],
    search_term: str | None,
    sort_key: SortKey | str = SortKey.DATE,
) -> list[PostRecord]:
    """Filter and order an already retrieved snapshot of posts.

    With tag filters present, only posts carrying at least one of them
    survive; retrieval already applied the same union, so this only
    matters for snapshots that came from elsewhere.
    """
    wanted = {normalize_tag(tag) for tag in tag_filters if normalize_tag(tag)}
    candidates: Iterable[PostRecord] = posts
    if wanted:
        candidates = [post for post in posts if wanted.intersection(post.tags)]
    return sort_posts(filter_posts(candidates, search_term), sort_key)


async def retrieve_posts(
    store: ForumStore,
    tags: Sequence[str],
    limit: int | None = None,
) -> list[PostRecord]:
    """Fetch the candidate posts for a tag filter.

    No tags: the newest ``limit`` posts. Tags: up to ``limit`` posts
    carrying any of them, in no particular order.
    """
    cap = settings.feed_fetch_limit if limit is None else limit
    if tags:
        logger.debug("Loading posts with tags %s", list(tags))
        return await store.list_posts_by_tags(list(tags), cap)
    logger.debug("Loading all posts")
    return await store.list_posts(cap)


class HomeFeed:
    """State behind the home feed view.

    Changing the tag filter re-retrieves; changing the search term or the
    sort key only recomposes the snapshot already held.
    """

    def __init__(
        self,
        store: ForumStore,
        *,
        search_term: str = "",
        sort_key: SortKey | str = SortKey.DATE,
        limit: int | None = None,
    ) -> None:
        self.store = store
        self.tag_filters = TagFilterSet()
        self.search_term = search_term
        self.sort_key = SortKey(sort_key)
        self.limit = settings.feed_fetch_limit if limit is None else limit
        self.posts: list[PostRecord] = []
        self.visible: list[PostRecord] = []
        self.error = ""
        self.loading = False

    def recompose(self) -> list[PostRecord]:
        """Re-run filtering and sorting over the held snapshot."""
        self.visible = compose_feed(self.posts, self.tag_filters, self.search_term, self.sort_key)
        return self.visible

    async def load(self) -> list[PostRecord]:
        """Retrieve posts for the current tag filter and recompose.

        A failed retrieval empties the feed and sets ``error``; call
        ``refresh`` to retry.
        """
        self.loading = True
        self.error = ""
        try:
            self.posts = await retrieve_posts(self.store, self.tag_filters.as_list(), self.limit)
        except ForumError as err:
            logger.warning("Error loading posts: %s", err)
            self.posts = []
            self.error = LOAD_ERROR_MESSAGE
        finally:
            self.loading = False
        logger.debug("Posts loaded: %d", len(self.posts))
        return self.recompose()

    async def refresh(self) -> list[PostRecord]:
        """Manual retry: retrieve again with unchanged filters."""
        return await self.load()

    async def add_tag(self, tag: str) -> bool:
        """Add a tag filter and re-retrieve; ``False`` if the tag was blank or present."""
        if not self.tag_filters.add(tag):
            logger.debug("Tag %r already exists or is empty", tag)
            return False
        await self.load()
        return True

    async def remove_tag(self, index: int) -> str:
        """Remove the tag filter at ``index`` and re-retrieve."""
        removed = self.tag_filters.remove_at(index)
        await self.load()
        return removed

    async def clear_tags(self) -> None:
        """Drop every tag filter and re-retrieve."""
        if not len(self.tag_filters):
            return
        self.tag_filters.clear()
        await self.load()

    def set_search(self, search_term: str) -> list[PostRecord]:
        self.search_term = search_term
        return self.recompose()

    def set_sort(self, sort_key: SortKey | str) -> list[PostRecord]:
        self.sort_key = SortKey(sort_key)
        return self.recompose()
