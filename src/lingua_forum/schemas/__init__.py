"""
Pydantic schemas for the in-memory copies of stored documents.

Services hand these records around; ORM instances never leave the store.
"""

from .comment import CommentRecord
from .post import PostDraft, PostRecord, PostUpdate, normalize_tag, normalize_tags
from .saved_post import SavedPostRecord, SavedPostSnapshot
from .user import AuthSession, UserIdentity

__all__ = [
    "CommentRecord",
    "PostDraft", "PostRecord", "PostUpdate", "normalize_tag", "normalize_tags",
    "SavedPostRecord", "SavedPostSnapshot",
    "AuthSession", "UserIdentity",
]
