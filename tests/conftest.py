# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Callable, Iterable, Iterator
from datetime import UTC, datetime, timedelta
from itertools import count
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import NullPool

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("FEDERATED_PROVIDER_SECRET", "federated-test-secret")

from lingua_forum.db.session import Base
from lingua_forum.models import Post
from lingua_forum.repositories.forum_store import ForumStore
from lingua_forum.schemas.post import PostRecord, normalize_tags
from lingua_forum.schemas.user import UserIdentity
from lingua_forum.services.identity import LocalIdentityProvider

BASE_TIME = datetime(2024, 3, 1, 12, 0, tzinfo=UTC)


@pytest.fixture(scope="session")
def db_path(tmp_path_factory: pytest.TempPathFactory) -> Path:
    return tmp_path_factory.mktemp("store") / "forum.db"


@pytest.fixture(scope="session")
def engine(db_path: Path) -> Iterator[Engine]:
    """Synchronous engine used to seed and inspect the store file directly."""
    engine = create_engine(f"sqlite:///{db_path}")
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture(scope="session")
def async_engine(engine: Engine, db_path: Path) -> Iterator[AsyncEngine]:
    # NullPool: pytest-asyncio gives each test its own event loop.
    async_engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}", poolclass=NullPool)
    try:
        yield async_engine
    finally:
        async_engine.sync_engine.dispose()


@pytest.fixture()
def sync_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture(autouse=True)
def clean_tables(engine: Engine) -> Iterator[None]:
    try:
        yield
    finally:
        # Ensure each test sees a clean database.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture()
def session_factory(async_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=async_engine, autoflush=False, expire_on_commit=False)


@pytest.fixture()
def store(session_factory: async_sessionmaker[AsyncSession]) -> ForumStore:
    return ForumStore(session_factory)


@pytest.fixture()
def identity_provider(session_factory: async_sessionmaker[AsyncSession]) -> LocalIdentityProvider:
    return LocalIdentityProvider(session_factory)


@pytest.fixture()
def alice() -> UserIdentity:
    """Return the primary signed-in user."""
    return UserIdentity(id="alice-uid", display_name="Alice")


@pytest.fixture()
def bob() -> UserIdentity:
    """Return a second signed-in user."""
    return UserIdentity(id="bob-uid", display_name="Bob")


@pytest.fixture()
def make_post(sync_session_factory: sessionmaker[Session]) -> Callable[..., PostRecord]:
    """Insert a post directly into the store and return its record.

    Each post is one minute newer than the previous one unless
    ``created_at`` is given; ``undated=True`` stores no creation time.
    """
    order = count(1)

    def _make(
        *,
        title: str = "Post",
        content: str = "Body",
        tags: Iterable[str] = (),
        author_id: str = "alice-uid",
        author_name: str = "Alice",
        upvotes: int = 0,
        created_at: datetime | None = None,
        undated: bool = False,
    ) -> PostRecord:
        stamp = None if undated else created_at or BASE_TIME + timedelta(minutes=next(order))
        with sync_session_factory() as session:
            post = Post(
                title=title,
                content=content,
                author_id=author_id,
                author_name=author_name,
                upvotes=upvotes,
                created_at=stamp,
                updated_at=stamp,
            )
            post.replace_tags(normalize_tags(tags))
            session.add(post)
            session.flush()
            if undated:
                # The column default fills in NULLs on insert, so clear it afterwards.
                post.created_at = None
                post.updated_at = None
            session.commit()
            return PostRecord.model_validate(post)

    return _make
