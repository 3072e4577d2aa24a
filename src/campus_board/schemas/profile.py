"""Profile-related Pydantic schemas."""
from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from .common import Record

ProfileRole = Literal["user", "admin"]


class ProfileRecord(Record):
    """Normalised profile of a student."""

    id: str
    role: ProfileRole = "user"
    username: str | None = None
    name: str
    grade: int | None = None
    class_number: str | None = None
    bio: str | None = None
    interests: list[str] = Field(default_factory=list)
    mbti: str | None = None
    toefl: str | None = None
    sat: str | None = None
    ap: str | None = None
    other_scores: str | None = None
    gpa: str | None = None
    best_subject: str | None = None
    updated_at: datetime | None = None


class ProfileUpdate(BaseModel):
    """Editable profile fields; blank strings are stored as null."""

    username: str | None = None
    name: str
    grade: int | None = Field(None, ge=1, le=12)
    class_number: str | None = None
    bio: str | None = None
    mbti: str | None = None
    toefl: str | None = None
    sat: str | None = None
    ap: str | None = None
    other_scores: str | None = None
    gpa: str | None = None
    best_subject: str | None = None


class InterestCreate(BaseModel):
    """Schema for adding an interest tag."""

    interest: str
