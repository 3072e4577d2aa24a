"""Shared Pydantic schemas for view models."""
from __future__ import annotations

from datetime import datetime
from typing import Generic, TypeVar

from pydantic import BaseModel, Field, computed_field, field_validator

from campus_board.db.time import as_utc

T = TypeVar("T")

ANONYMOUS_LABEL = "익명"


class Record(BaseModel):
    """Base for flat store rows; timestamps are normalised to aware UTC."""

    @field_validator("created_at", "updated_at", mode="after", check_fields=False)
    @classmethod
    def _aware_timestamps(cls, value: datetime | None) -> datetime | None:
        return as_utc(value) if value is not None else None


class Section(BaseModel, Generic[T]):
    """Part of a composite view that loaded independently of its siblings.

    A failed fetch keeps the page renderable: ``data`` holds the empty value
    and ``error`` the store's message.
    """

    data: T
    error: str | None = Field(None, description="Store error that degraded this section")

    @computed_field  # type: ignore[prop-decorator]
    @property
    def degraded(self) -> bool:
        return self.error is not None
