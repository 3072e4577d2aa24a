# src/campus_board/models/message.py
"""Models describing moderated peer-to-peer messages."""

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from campus_board.db.session import Base
from campus_board.db.time import utcnow

from ._ids import new_id

MESSAGE_STATUSES = ("pending", "accepted", "rejected", "on_hold")


class Message(Base):
    """Message request or chat line between two students.

    Requests start as ``pending`` and only the receiver moves them on.
    Chat replies inside an accepted thread are written as ``accepted``.
    """

    __tablename__ = "messages"
    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'accepted', 'rejected', 'on_hold')",
            name="ck_messages_status",
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    sender_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    receiver_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    type: Mapped[str] = mapped_column(String(64), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
