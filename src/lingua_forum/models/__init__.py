"""SQLAlchemy models for the Lingua Forum document store."""

from .account import Account
from .comment import Comment
from .post import Post, PostTag
from .saved_post import SavedPost
from .upvote import Upvote

__all__ = [
    "Account",
    "Comment",
    "Post", "PostTag",
    "SavedPost",
    "Upvote",
]
