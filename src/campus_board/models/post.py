# src/campus_board/models/post.py
"""Board post model."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from campus_board.db.session import Base
from campus_board.db.time import utcnow

from ._ids import new_id

# Display order of the board categories.
POST_CATEGORIES = ("동아리", "학교 과제", "교과목", "교내 대회", "멘토 멘티", "기타")


class Post(Base):
    """A post on one of the category boards.

    Like, dislike and comment counts are not stored here; the store derives
    them on read through the ``post_summaries`` source.
    """

    __tablename__ = "posts"
    __table_args__ = (Index("ix_posts_created_at", "created_at"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    author_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    category: Mapped[str] = mapped_column(String(32), nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    is_anonymous: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
