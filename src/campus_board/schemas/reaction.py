"""Reaction-related Pydantic schemas."""

from typing import Literal

from pydantic import BaseModel, Field

ReactionValue = Literal["like", "dislike"]


class ReactionRequest(BaseModel):
    """Schema for toggling a reaction on a post."""

    reaction: ReactionValue = Field(..., description="'like' or 'dislike'")
