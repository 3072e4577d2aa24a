"""Composite view models rebuilt from scratch after every load."""
from __future__ import annotations

from pydantic import BaseModel, Field

from .comment import CommentNode
from .common import Section
from .message import MessageRecord, StudentOption
from .post import AttachmentRecord, PostSummary
from .reaction import ReactionValue


class BoardView(BaseModel):
    """Board listing after category and search filtering."""

    category: str
    query: str = ""
    posts: Section[list[PostSummary]]


class PostPageView(BaseModel):
    """Everything the post page renders, fetched in one parallel batch."""

    post: PostSummary
    comments: Section[list[CommentNode]]
    comment_total: int = Field(0, description="Number of flat comments loaded")
    my_reaction: Section[ReactionValue | None]
    attachments: Section[list[AttachmentRecord]]
    can_delete_post: bool = False


class MessagesView(BaseModel):
    """Messages page partitions and the selected chat thread.

    Students and messages load independently. When the message fetch fails
    the partitions are empty and ``messages.error`` says why.
    """

    students: Section[list[StudentOption]]
    names: dict[str, str] = Field(default_factory=dict)
    messages: Section[list[MessageRecord]]
    incoming: list[MessageRecord] = Field(default_factory=list)
    outgoing: list[MessageRecord] = Field(default_factory=list)
    on_hold: list[MessageRecord] = Field(default_factory=list)
    chat_partners: list[str] = Field(default_factory=list)
    selected_partner: str | None = None
    conversation: list[MessageRecord] = Field(default_factory=list)
