# tests/test_main.py
"""End-to-end flow through the application wiring."""

import pytest

from lingua_forum.main import create_app
from lingua_forum.schemas.post import PostDraft
from lingua_forum.services import post_service
from lingua_forum.services.upvotes import Reconciled, UpvoteState


@pytest.mark.asyncio
async def test_signed_in_user_posts_filters_and_upvotes(session_factory) -> None:
    app = await create_app(session_factory)
    assert app.viewer is None

    await app.identity.signup("ana@example.com", "hunter22", "Ana")
    viewer = app.viewer
    assert viewer is not None and viewer.display_name == "Ana"

    post_id = await post_service.create_post(
        store=app.store,
        viewer=viewer,
        draft=PostDraft(title="French grammar tips", content="Use the subjunctive", tags=["French"]),
    )
    await post_service.create_post(
        store=app.store,
        viewer=viewer,
        draft=PostDraft(title="Learning Kanji", content="Radicals first", tags=["japanese"]),
    )

    feed = app.home_feed()
    await feed.add_tag("FRENCH")
    assert [post.id for post in feed.visible] == [post_id]

    control = app.upvote_control(feed.visible[0])
    await control.load()
    outcome = await control.toggle()
    assert outcome == Reconciled(UpvoteState(True, 1))

    await feed.clear_tags()
    feed.set_sort("upvotes")
    assert feed.visible[0].id == post_id
    assert feed.visible[0].upvotes == 1


@pytest.mark.asyncio
async def test_controls_capture_viewer_at_creation(session_factory, make_post) -> None:
    app = await create_app(session_factory)
    post = make_post()

    anonymous_control = app.upvote_control(post)
    await app.identity.signup("ana@example.com", "hunter22")
    signed_in_control = app.save_control(post)

    assert anonymous_control.viewer is None
    assert signed_in_control.viewer == app.viewer
