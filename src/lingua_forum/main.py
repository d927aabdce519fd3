# src/lingua_forum/main.py
"""Main entry point for the Lingua Forum application."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from lingua_forum.core.logging import configure_logging
from lingua_forum.core.settings import settings
from lingua_forum.db.session import SessionLocal, create_tables
from lingua_forum.repositories.forum_store import ForumStore
from lingua_forum.schemas.post import PostRecord
from lingua_forum.schemas.user import UserIdentity
from lingua_forum.services.dashboard import SavedPostsView, SaveControl
from lingua_forum.services.feed import HomeFeed
from lingua_forum.services.identity import LocalIdentityProvider
from lingua_forum.services.upvotes import UpvoteControl

logger = logging.getLogger(__name__)


@dataclass
class ForumApp:
    """Wires the store and identity provider into per-view state objects.

    The signed-in identity is read once here and handed to each control;
    the controls never consult the provider themselves.
    """

    store: ForumStore
    identity: LocalIdentityProvider

    @property
    def viewer(self) -> UserIdentity | None:
        return self.identity.current_user

    def home_feed(self) -> HomeFeed:
        return HomeFeed(self.store, limit=settings.feed_fetch_limit)

    def upvote_control(self, post: PostRecord) -> UpvoteControl:
        return UpvoteControl(self.store, post, self.viewer)

    def save_control(self, post: PostRecord, *, in_saved_view: bool = False) -> SaveControl:
        return SaveControl(self.store, post, self.viewer, in_saved_view=in_saved_view)

    def saved_posts(self) -> SavedPostsView:
        return SavedPostsView(self.store, self.viewer)


async def create_app(
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    *,
    init_schema: bool = True,
) -> ForumApp:
    """Build the application objects; creates tables on the default engine when asked."""
    configure_logging()
    factory = session_factory or SessionLocal
    if init_schema and session_factory is None:
        await create_tables()
    logger.info("%s %s ready", settings.app_name, settings.app_version)
    return ForumApp(
        store=ForumStore(factory),
        identity=LocalIdentityProvider(factory),
    )
