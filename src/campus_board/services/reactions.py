"""Reaction toggling against the one-row-per-(post, user) constraint."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from campus_board.core.errors import InvalidInputError
from campus_board.models.reaction import REACTION_VALUES
from campus_board.schemas.reaction import ReactionValue
from campus_board.store.base import REACTIONS, RecordStore

logger = logging.getLogger(__name__)

REACTION_CONFLICT_KEY = ("post_id", "user_id")


class ReactionAction(Enum):
    """Store operation chosen for a reaction request."""

    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True)
class ReactionDecision:
    """Outcome of reconciling a request with the current reaction."""

    action: ReactionAction
    result: ReactionValue | None


def decide_reaction(current: ReactionValue | None, requested: ReactionValue) -> ReactionDecision:
    """Map the current reaction and a request to a store operation.

    Re-applying the current value retracts it; any other request leaves
    exactly one row holding the requested value.
    """
    if requested not in REACTION_VALUES:
        raise InvalidInputError(f"Unknown reaction: {requested!r}")
    if current is None:
        return ReactionDecision(ReactionAction.INSERT, requested)
    if current == requested:
        return ReactionDecision(ReactionAction.DELETE, None)
    return ReactionDecision(ReactionAction.UPDATE, requested)


async def apply_reaction(
    store: RecordStore,
    *,
    post_id: str,
    user_id: str,
    current: ReactionValue | None,
    requested: ReactionValue,
) -> ReactionValue | None:
    """Write the decision for ``requested`` and return the resulting reaction.

    Inserts and flips both go through an upsert on ``(post_id, user_id)`` so
    a stale ``current`` can never produce a second row. Store errors
    propagate untouched; nothing is cached locally.
    """
    decision = decide_reaction(current, requested)
    key = {"post_id": post_id, "user_id": user_id}
    if decision.action is ReactionAction.DELETE:
        await store.delete(REACTIONS, eq=key)
    else:
        await store.upsert(
            REACTIONS,
            {**key, "reaction": decision.result},
            on_conflict=REACTION_CONFLICT_KEY,
        )
    logger.info("Reaction on post %s by %s: %s", post_id, user_id, decision.action.value)
    return decision.result
