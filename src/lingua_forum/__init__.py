"""Lingua Forum: a tag-filtered posting board for language learners."""

__version__ = "0.1.0"
