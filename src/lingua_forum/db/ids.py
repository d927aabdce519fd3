"""Store-assigned document identifiers."""

import secrets


def new_document_id() -> str:
    """Return a fresh opaque 20-character document id."""
    return secrets.token_hex(10)
