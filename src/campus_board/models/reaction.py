# src/campus_board/models/reaction.py
"""Models capturing like/dislike reactions on posts."""

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from campus_board.db.session import Base
from campus_board.db.time import utcnow

REACTION_VALUES = ("like", "dislike")


class Reaction(Base):
    """Per-user reaction on a post."""

    __tablename__ = "reactions"
    __table_args__ = (
        CheckConstraint("reaction IN ('like', 'dislike')", name="ck_reactions_reaction"),
        Index("ix_reactions_post_id", "post_id"),
    )

    # Composite primary key prevents a second reaction from the same user.
    post_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)

    reaction: Mapped[str] = mapped_column(String(8), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
