"""Business logic services for the Lingua Forum application."""

from .dashboard import SavedPostsView, SaveControl, load_saved_posts
from .feed import HomeFeed, SortKey, TagFilterSet, compose_feed
from .identity import LocalIdentityProvider
from .upvotes import UpvoteControl, UpvoteState, toggle_upvote

__all__ = [
    "HomeFeed",
    "SaveControl",
    "SavedPostsView",
    "LocalIdentityProvider",
    "SortKey",
    "TagFilterSet",
    "UpvoteControl",
    "UpvoteState",
    "compose_feed",
    "load_saved_posts",
    "toggle_upvote",
]
