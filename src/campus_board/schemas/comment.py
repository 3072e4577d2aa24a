"""Comment schemas: flat rows and the nested reply tree."""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, computed_field

from .common import ANONYMOUS_LABEL, Record


class CommentRecord(Record):
    """Flat comment row as returned by ``comment_summaries``."""

    id: str
    post_id: str
    parent_comment_id: str | None = None
    author_id: str
    author_name: str = "Unknown"
    content: str
    is_anonymous: bool = False
    created_at: datetime

    @computed_field  # type: ignore[prop-decorator]
    @property
    def display_author(self) -> str:
        return ANONYMOUS_LABEL if self.is_anonymous else self.author_name


class CommentNode(CommentRecord):
    """Comment with its ordered replies."""

    replies: list[CommentNode] = Field(default_factory=list)


class CommentCreate(BaseModel):
    """Schema for creating a comment or a reply."""

    content: str
    parent_comment_id: str | None = Field(None, description="Comment being replied to")
    is_anonymous: bool = False
