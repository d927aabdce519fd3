# tests/test_post_service.py
"""Tests for post authoring, comments and bookmarks."""

from unittest.mock import AsyncMock

import pytest

from lingua_forum.core.errors import RemoteFailure, Unauthenticated
from lingua_forum.schemas.post import PostDraft, PostUpdate
from lingua_forum.schemas.user import UserIdentity
from lingua_forum.services import post_service


@pytest.mark.asyncio
async def test_create_post_stamps_author(store, alice) -> None:
    post_id = await post_service.create_post(
        store=store,
        viewer=alice,
        draft=PostDraft(title="Kanji", content="Stroke order", tags=["Japanese "]),
    )

    post = await store.get_post(post_id)
    assert post.author_id == alice.id
    assert post.author_name == "Alice"
    assert post.is_anonymous is False
    assert post.tags == ["japanese"]


@pytest.mark.asyncio
async def test_anonymous_post_hides_author_name(store, alice) -> None:
    post_id = await post_service.create_post(
        store=store,
        viewer=alice,
        draft=PostDraft(title="Question", content="Is this right?", is_anonymous=True),
    )

    post = await store.get_post(post_id)
    assert post.author_name == "Anonymous"
    assert post.author_id == alice.id


@pytest.mark.asyncio
async def test_viewer_without_display_name_posts_as_anonymous_sentinel(store) -> None:
    viewer = UserIdentity(id="nameless-uid")
    post_id = await post_service.create_post(
        store=store, viewer=viewer, draft=PostDraft(title="Hi", content="Hello")
    )

    post = await store.get_post(post_id)
    assert post.author_name == "Anonymous"
    assert post.is_anonymous is False


@pytest.mark.asyncio
async def test_actions_require_viewer(store, make_post) -> None:
    post = make_post()

    with pytest.raises(Unauthenticated):
        await post_service.create_post(store=store, viewer=None, draft=PostDraft(title="t", content="c"))
    with pytest.raises(Unauthenticated):
        await post_service.add_comment(store=store, viewer=None, post_id=post.id, content="hi")
    with pytest.raises(Unauthenticated):
        await post_service.save_post(store=store, viewer=None, post=post)
    with pytest.raises(Unauthenticated):
        await post_service.upvote_post(store=store, viewer=None, post_id=post.id)


@pytest.mark.asyncio
async def test_update_toggles_anonymity_and_normalizes_tags(store, make_post, alice) -> None:
    post = make_post(author_id=alice.id)

    assert await post_service.update_post(
        store=store,
        viewer=alice,
        post_id=post.id,
        changes=PostUpdate(is_anonymous=True, tags=["  SPANISH", "spanish"]),
    )
    hidden = await store.get_post(post.id)
    assert hidden.author_name == "Anonymous"
    assert hidden.is_anonymous is True
    assert hidden.tags == ["spanish"]
    assert hidden.title == post.title

    assert await post_service.update_post(
        store=store, viewer=alice, post_id=post.id, changes=PostUpdate(is_anonymous=False)
    )
    shown = await store.get_post(post.id)
    assert shown.author_name == "Alice"


@pytest.mark.asyncio
async def test_update_and_delete_by_non_author_return_false(store, make_post, bob) -> None:
    post = make_post(author_id="alice-uid")

    assert not await post_service.update_post(
        store=store, viewer=bob, post_id=post.id, changes=PostUpdate(title="Mine now")
    )
    assert not await post_service.delete_post(store=store, viewer=bob, post_id=post.id)
    assert (await store.get_post(post.id)).title == post.title


@pytest.mark.asyncio
async def test_delete_post_by_author(store, make_post, alice) -> None:
    post = make_post(author_id=alice.id)

    assert await post_service.delete_post(store=store, viewer=alice, post_id=post.id)
    assert await store.get_post(post.id) is None
    assert not await post_service.delete_post(store=store, viewer=alice, post_id=post.id)


@pytest.mark.asyncio
async def test_update_returns_false_on_store_failure(store, make_post, alice, mocker) -> None:
    post = make_post(author_id=alice.id)
    mocker.patch.object(store, "update_post", AsyncMock(side_effect=RemoteFailure("offline")))

    assert not await post_service.update_post(
        store=store, viewer=alice, post_id=post.id, changes=PostUpdate(title="New")
    )


@pytest.mark.asyncio
async def test_list_my_posts_only_returns_own(store, make_post, alice) -> None:
    mine = make_post(author_id=alice.id)
    make_post(author_id="bob-uid")

    posts = await post_service.list_my_posts(store=store, viewer=alice)

    assert [post.id for post in posts] == [mine.id]


@pytest.mark.asyncio
async def test_comments_round_trip(store, make_post, alice, bob) -> None:
    post = make_post()
    await post_service.add_comment(store=store, viewer=alice, post_id=post.id, content="  Nice tip ")
    await post_service.add_comment(
        store=store, viewer=bob, post_id=post.id, content="Thanks", is_anonymous=True
    )

    comments = await post_service.load_comments(store=store, post_id=post.id)

    assert [(c.content, c.author_name) for c in comments] == [
        ("Nice tip", "Alice"),
        ("Thanks", "Anonymous"),
    ]


@pytest.mark.asyncio
async def test_blank_comment_is_rejected(store, make_post, alice) -> None:
    post = make_post()
    with pytest.raises(ValueError):
        await post_service.add_comment(store=store, viewer=alice, post_id=post.id, content="   ")


@pytest.mark.asyncio
async def test_remove_upvote_without_marker_is_noop(store, make_post, alice, mocker) -> None:
    post = make_post(upvotes=4)
    delete = mocker.spy(store, "delete_upvote")

    await post_service.remove_upvote(store=store, viewer=alice, post_id=post.id)

    delete.assert_not_called()
    assert await store.get_upvote_count(post.id) == 4
