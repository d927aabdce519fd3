"""Data access layer for the Lingua Forum document store."""

from .forum_store import ForumStore

__all__ = ["ForumStore"]
