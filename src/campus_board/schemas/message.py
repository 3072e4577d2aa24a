"""Message-related Pydantic schemas."""
from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from .common import Record

MessageStatus = Literal["pending", "accepted", "rejected", "on_hold"]


class MessageRecord(Record):
    """Message row exchanged between two students."""

    id: str
    sender_id: str
    receiver_id: str
    type: str
    content: str
    status: MessageStatus
    created_at: datetime


class StudentOption(BaseModel):
    """Recipient candidate shown when composing a message."""

    id: str
    name: str
    grade: int | None = None


class MessageCreate(BaseModel):
    """Schema for sending a message request to one or more students."""

    receiver_ids: list[str] = Field(default_factory=list)
    type: str = ""
    content: str = ""


class ChatCreate(BaseModel):
    """Schema for a chat line inside an accepted thread."""

    content: str
