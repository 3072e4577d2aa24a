"""Identifier helpers for models."""

import uuid


def new_id() -> str:
    """Return a random UUID4 string used as a primary key."""
    return str(uuid.uuid4())
