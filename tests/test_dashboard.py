# tests/test_dashboard.py
"""Tests for saved posts and the bookmark toggle."""

from unittest.mock import AsyncMock

import pytest

from lingua_forum.core.errors import RemoteFailure, ToggleInProgress, Unauthenticated
from lingua_forum.services import post_service
from lingua_forum.services.dashboard import (
    SAVED_LOAD_ERROR_MESSAGE,
    SavedPostsView,
    SaveControl,
    load_saved_posts,
)


@pytest.mark.asyncio
async def test_saved_posts_join_live_posts_and_skip_deleted(store, make_post, alice, bob) -> None:
    first = make_post(title="Kanji", author_id=alice.id)
    second = make_post(title="Verbs", author_id=alice.id)
    await post_service.save_post(store=store, viewer=bob, post=first)
    await post_service.save_post(store=store, viewer=bob, post=second)
    await post_service.delete_post(store=store, viewer=alice, post_id=first.id)

    posts = await load_saved_posts(store, bob)

    assert [post.id for post in posts] == [second.id]
    assert len(await store.list_saved_posts(bob.id)) == 2


@pytest.mark.asyncio
async def test_saved_posts_require_viewer(store) -> None:
    with pytest.raises(Unauthenticated):
        await load_saved_posts(store, None)


@pytest.mark.asyncio
async def test_save_control_toggles_bookmark(store, make_post, bob) -> None:
    post = make_post()
    control = SaveControl(store, post, bob)
    assert await control.load() is False

    assert await control.toggle() is True
    assert await store.is_post_saved(bob.id, post.id) is True
    saved = await store.list_saved_posts(bob.id)
    assert saved[0].title == post.title
    assert saved[0].author_name == post.author_name

    assert await control.toggle() is False
    assert await store.is_post_saved(bob.id, post.id) is False


@pytest.mark.asyncio
async def test_unsave_from_saved_view_notifies(store, make_post, bob) -> None:
    post = make_post()
    await post_service.save_post(store=store, viewer=bob, post=post)
    removed = []
    control = SaveControl(store, post, bob, in_saved_view=True, on_unsaved=removed.append)

    assert await control.load() is True
    assert await control.toggle() is False
    assert removed == [post]


@pytest.mark.asyncio
async def test_save_failure_keeps_flag_and_records_error(store, make_post, bob, mocker) -> None:
    post = make_post()
    mocker.patch.object(store, "set_saved_post", AsyncMock(side_effect=RemoteFailure("offline")))
    control = SaveControl(store, post, bob)

    assert await control.toggle() is False

    assert control.is_saved is False
    assert control.busy is False
    assert isinstance(control.last_error, RemoteFailure)
    assert await store.is_post_saved(bob.id, post.id) is False


@pytest.mark.asyncio
async def test_save_control_guards(store, make_post, bob) -> None:
    post = make_post()
    with pytest.raises(Unauthenticated):
        await SaveControl(store, post, None).toggle()

    busy = SaveControl(store, post, bob)
    busy.busy = True
    with pytest.raises(ToggleInProgress):
        await busy.toggle()


@pytest.mark.asyncio
async def test_unreadable_saved_post_is_skipped(store, make_post, bob, mocker) -> None:
    first = make_post(title="Kanji")
    second = make_post(title="Verbs")
    await post_service.save_post(store=store, viewer=bob, post=first)
    await post_service.save_post(store=store, viewer=bob, post=second)
    real_get_post = store.get_post

    async def flaky_get_post(post_id: str):
        if post_id == first.id:
            raise RemoteFailure("offline")
        return await real_get_post(post_id)

    mocker.patch.object(store, "get_post", AsyncMock(side_effect=flaky_get_post))

    posts = await load_saved_posts(store, bob)

    assert [post.id for post in posts] == [second.id]


@pytest.mark.asyncio
async def test_saved_posts_view_keeps_list_when_listing_fails(store, make_post, bob, mocker) -> None:
    post = make_post()
    await post_service.save_post(store=store, viewer=bob, post=post)
    view = SavedPostsView(store, bob)
    assert [saved.id for saved in await view.load()] == [post.id]

    mocker.patch.object(store, "list_saved_posts", AsyncMock(side_effect=RemoteFailure("offline")))
    posts = await view.load()

    assert [saved.id for saved in posts] == [post.id]
    assert view.error == SAVED_LOAD_ERROR_MESSAGE
    assert view.loading is False


@pytest.mark.asyncio
async def test_unsave_from_saved_view_removes_card(store, make_post, bob) -> None:
    kept = make_post(title="Kanji")
    dropped = make_post(title="Verbs")
    await post_service.save_post(store=store, viewer=bob, post=kept)
    await post_service.save_post(store=store, viewer=bob, post=dropped)
    view = SavedPostsView(store, bob)
    await view.load()

    assert await view.save_control(dropped).toggle() is False

    assert [post.id for post in view.posts] == [kept.id]
    assert view.error == ""
