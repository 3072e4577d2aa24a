"""Post-related Pydantic schemas."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from pydantic import BaseModel, Field, computed_field

from .common import ANONYMOUS_LABEL, Record


class PostSummary(Record):
    """Post row joined with its author and derived counters."""

    id: str
    author_id: str
    author_name: str = "Unknown"
    author_username: str | None = None
    category: str
    title: str
    content: str
    is_anonymous: bool = False
    created_at: datetime
    likes_count: int = 0
    dislikes_count: int = 0
    comments_count: int = 0

    @computed_field  # type: ignore[prop-decorator]
    @property
    def display_author(self) -> str:
        """Author label shown to readers."""
        return ANONYMOUS_LABEL if self.is_anonymous else self.author_name


class PostCreate(BaseModel):
    """Schema for creating a new post."""

    category: str = Field(..., description="One of the board categories")
    title: str
    content: str
    is_anonymous: bool = False


class AttachmentRecord(Record):
    """Attachment row plus its derived public URL."""

    id: str
    post_id: str | None = None
    bucket: str
    file_path: str
    file_name: str | None = None
    mime_type: str | None = None
    size_bytes: int | None = None
    sort_order: int = 0
    public_url: str = ""


@dataclass(frozen=True)
class ImageUpload:
    """Image supplied alongside a new post."""

    file_name: str
    content_type: str
    content: bytes
