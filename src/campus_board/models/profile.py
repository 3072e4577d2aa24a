# src/campus_board/models/profile.py
"""Student profile rows keyed by the identity principal id."""

from datetime import datetime

from sqlalchemy import JSON, CheckConstraint, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from campus_board.db.session import Base
from campus_board.db.time import utcnow

PROFILE_ROLES = ("user", "admin")


class Profile(Base):
    """Browsable profile of a student.

    The primary key is shared with the identity provider's principal id, so
    exactly one profile exists per identity.
    """

    __tablename__ = "profiles"
    __table_args__ = (
        CheckConstraint("role IN ('user', 'admin')", name="ck_profiles_role"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    role: Mapped[str] = mapped_column(String(16), nullable=False, default="user")
    username: Mapped[str | None] = mapped_column(String(64), unique=True, nullable=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    grade: Mapped[int | None] = mapped_column(Integer, nullable=True)
    class_number: Mapped[str | None] = mapped_column(String(16), nullable=True)
    bio: Mapped[str | None] = mapped_column(Text, nullable=True)
    interests: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)

    # Free-text academic fields
    mbti: Mapped[str | None] = mapped_column(String(8), nullable=True)
    toefl: Mapped[str | None] = mapped_column(String(32), nullable=True)
    sat: Mapped[str | None] = mapped_column(String(32), nullable=True)
    ap: Mapped[str | None] = mapped_column(Text, nullable=True)
    other_scores: Mapped[str | None] = mapped_column(Text, nullable=True)
    gpa: Mapped[str | None] = mapped_column(String(32), nullable=True)
    best_subject: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
