"""Record store contract consumed by the services.

The store is a flat relational surface: equality and ordering filters for
reads, and insert/update/delete/upsert for writes. Every call is a single
request/response; nothing here subscribes to changes.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, NamedTuple, Protocol

Row = dict[str, Any]

# Source names shared with the store. Summaries are read-only.
PROFILES = "profiles"
POSTS = "posts"
POST_SUMMARIES = "post_summaries"
COMMENTS = "comments"
COMMENT_SUMMARIES = "comment_summaries"
REACTIONS = "reactions"
POST_ATTACHMENTS = "post_attachments"
MESSAGES = "messages"


class Order(NamedTuple):
    """Ordering clause for :meth:`RecordStore.select`."""

    column: str
    ascending: bool = True


def asc(column: str) -> Order:
    """Order ascending by ``column``."""
    return Order(column, True)


def desc(column: str) -> Order:
    """Order descending by ``column``."""
    return Order(column, False)


class RecordStore(Protocol):
    """Operations the application needs from the relational store.

    Implementations raise :class:`campus_board.core.errors.StoreError` for
    every rejected request (constraint violation, unknown column, lost
    connection, authorization failure).
    """

    async def select(
        self,
        source: str,
        *,
        columns: Sequence[str] | None = None,
        eq: Mapping[str, Any] | None = None,
        any_eq: Mapping[str, Any] | None = None,
        order_by: Sequence[Order] = (),
    ) -> list[Row]:
        """Return rows matching all ``eq`` predicates and any ``any_eq`` predicate."""
        ...

    async def select_one(
        self,
        source: str,
        *,
        columns: Sequence[str] | None = None,
        eq: Mapping[str, Any] | None = None,
    ) -> Row | None:
        """Return the single matching row, ``None`` when there is none."""
        ...

    async def insert(self, table: str, rows: Mapping[str, Any] | Sequence[Mapping[str, Any]]) -> list[Row]:
        """Insert one or many rows and return them as stored."""
        ...

    async def update(self, table: str, values: Mapping[str, Any], *, eq: Mapping[str, Any]) -> list[Row]:
        """Update matching rows and return them after the change."""
        ...

    async def delete(self, table: str, *, eq: Mapping[str, Any]) -> int:
        """Delete matching rows and return how many were removed."""
        ...

    async def upsert(self, table: str, row: Mapping[str, Any], *, on_conflict: Sequence[str]) -> Row:
        """Insert ``row`` or overwrite the row sharing its ``on_conflict`` key."""
        ...
