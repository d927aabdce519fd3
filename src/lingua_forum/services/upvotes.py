"""Optimistic upvote toggling reconciled against the stored counter.

A toggle moves through two phases. ``Optimistic`` is published straight
away with the locally guessed state. Once the remote writes settle, the
result is ``Reconciled`` (the counter re-read from the store) or
``RolledBack`` (the exact pre-toggle state, after any failure).
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from lingua_forum.core.errors import ForumError, ToggleInProgress
from lingua_forum.repositories.forum_store import ForumStore
from lingua_forum.schemas.post import PostRecord
from lingua_forum.schemas.user import UserIdentity
from lingua_forum.services.post_service import remove_upvote, require_viewer, upvote_post

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UpvoteState:
    """What one viewer sees for one post: their own vote and the displayed count."""

    has_upvoted: bool
    count: int


@dataclass(frozen=True)
class Optimistic:
    """Locally applied guess, shown before the store confirms anything."""

    state: UpvoteState


@dataclass(frozen=True)
class Reconciled:
    """Final state after a successful toggle.

    ``authoritative`` is ``False`` when the counter could not be re-read
    and the optimistic count was kept.
    """

    state: UpvoteState
    authoritative: bool = True


@dataclass(frozen=True)
class RolledBack:
    """Pre-toggle state restored after a failed remote write."""

    state: UpvoteState
    error: ForumError


UpvoteOutcome = Optimistic | Reconciled | RolledBack


def optimistic_target(state: UpvoteState) -> UpvoteState:
    """Return the state to display immediately when ``state`` is toggled."""
    if state.has_upvoted:
        return UpvoteState(has_upvoted=False, count=max(0, state.count - 1))
    return UpvoteState(has_upvoted=True, count=state.count + 1)


async def toggle_upvote(
    store: ForumStore,
    post_id: str,
    viewer: UserIdentity | None,
    state: UpvoteState,
    on_optimistic: Callable[[Optimistic], None] | None = None,
) -> Reconciled | RolledBack:
    """Toggle ``viewer``'s upvote on ``post_id`` starting from ``state``.

    ``on_optimistic`` runs synchronously with the optimistic guess before
    the first remote call. Remote failures never escape: they come back
    as ``RolledBack`` carrying the original ``state``.

    Raises:
        Unauthenticated: If ``viewer`` is ``None``; nothing is published or written.
    """
    require_viewer(viewer, "upvote posts")
    target = optimistic_target(state)
    if on_optimistic is not None:
        on_optimistic(Optimistic(target))

    try:
        if state.has_upvoted:
            await remove_upvote(store=store, viewer=viewer, post_id=post_id)
        else:
            await upvote_post(store=store, viewer=viewer, post_id=post_id)
    except ForumError as err:
        logger.warning("Error toggling upvote on post %s, rolling back: %s", post_id, err)
        return RolledBack(state=state, error=err)

    try:
        actual = await store.get_upvote_count(post_id)
    except ForumError as err:
        logger.warning("Could not re-read upvote count for post %s: %s", post_id, err)
        return Reconciled(state=target, authoritative=False)
    return Reconciled(state=UpvoteState(has_upvoted=target.has_upvoted, count=max(0, actual)))


class UpvoteControl:
    """Upvote button state for one post as seen by one viewer.

    The control refuses a second toggle while one is in flight and, once
    unmounted, drops results that arrive afterwards.
    """

    def __init__(
        self,
        store: ForumStore,
        post: PostRecord,
        viewer: UserIdentity | None,
        on_change: Callable[[UpvoteState], None] | None = None,
    ) -> None:
        self.store = store
        self.post_id = post.id
        self.viewer = viewer
        self.state = UpvoteState(has_upvoted=False, count=max(0, post.upvotes))
        self.busy = False
        self.last_error: ForumError | None = None
        self._on_change = on_change
        self._mounted = True

    def _apply(self, state: UpvoteState) -> None:
        if not self._mounted:
            return
        self.state = state
        if self._on_change is not None:
            self._on_change(state)

    async def load(self) -> UpvoteState:
        """Read the viewer's marker and the stored count, as done when the card mounts."""
        if self.viewer is None:
            return self.state
        try:
            has_upvoted = await self.store.has_upvote(self.post_id, self.viewer.id)
            count = await self.store.get_upvote_count(self.post_id)
        except ForumError as err:
            logger.warning("Error checking upvote status for post %s: %s", self.post_id, err)
            self.last_error = err
            return self.state
        self._apply(UpvoteState(has_upvoted=has_upvoted, count=max(0, count)))
        return self.state

    async def toggle(self) -> Reconciled | RolledBack:
        """Toggle the viewer's upvote and return the terminal outcome.

        Raises:
            ToggleInProgress: If a previous toggle has not settled yet.
            Unauthenticated: If no viewer is signed in.
        """
        if self.busy:
            raise ToggleInProgress("Upvote already in progress")
        require_viewer(self.viewer, "upvote posts")

        self.busy = True
        try:
            outcome = await toggle_upvote(
                self.store,
                self.post_id,
                self.viewer,
                self.state,
                on_optimistic=lambda guess: self._apply(guess.state),
            )
        finally:
            self.busy = False

        self._apply(outcome.state)
        self.last_error = outcome.error if isinstance(outcome, RolledBack) else None
        return outcome

    def unmount(self) -> None:
        """Stop applying results; in-flight remote calls still complete."""
        self._mounted = False
