"""SQLAlchemy-backed implementation of the record store."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Mapping, Sequence
from contextlib import asynccontextmanager
from typing import Any

import sqlalchemy as sa
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.sql import ColumnElement, FromClause

from campus_board.core.errors import StoreError
from campus_board.db.session import Base
from campus_board.models import Comment, Message, Post, PostAttachment, Profile, Reaction

from .base import (
    COMMENT_SUMMARIES,
    COMMENTS,
    MESSAGES,
    POST_ATTACHMENTS,
    POST_SUMMARIES,
    POSTS,
    PROFILES,
    REACTIONS,
    Order,
    Row,
)

__all__ = ["SqlRecordStore"]

logger = logging.getLogger(__name__)

_TABLES: dict[str, type[Base]] = {
    PROFILES: Profile,
    POSTS: Post,
    COMMENTS: Comment,
    REACTIONS: Reaction,
    POST_ATTACHMENTS: PostAttachment,
    MESSAGES: Message,
}

# Rows removed together with their owning post.
_CASCADES: dict[str, tuple[tuple[str, str], ...]] = {
    POSTS: ((COMMENTS, "post_id"), (REACTIONS, "post_id"), (POST_ATTACHMENTS, "post_id")),
}


def _count_reactions(value: str) -> Any:
    return (
        sa.select(sa.func.count())
        .select_from(Reaction)
        .where(Reaction.post_id == Post.id, Reaction.reaction == value)
        .scalar_subquery()
    )


def _post_summaries() -> FromClause:
    comments_count = (
        sa.select(sa.func.count())
        .select_from(Comment)
        .where(Comment.post_id == Post.id)
        .scalar_subquery()
    )
    return (
        sa.select(
            Post.id,
            Post.author_id,
            sa.func.coalesce(Profile.name, "Unknown").label("author_name"),
            Profile.username.label("author_username"),
            Post.category,
            Post.title,
            Post.content,
            Post.is_anonymous,
            Post.created_at,
            _count_reactions("like").label("likes_count"),
            _count_reactions("dislike").label("dislikes_count"),
            comments_count.label("comments_count"),
        )
        .select_from(Post)
        .outerjoin(Profile, Profile.id == Post.author_id)
        .subquery(POST_SUMMARIES)
    )


def _comment_summaries() -> FromClause:
    return (
        sa.select(
            Comment.id,
            Comment.post_id,
            Comment.parent_comment_id,
            Comment.author_id,
            sa.func.coalesce(Profile.name, "Unknown").label("author_name"),
            Comment.content,
            Comment.is_anonymous,
            Comment.created_at,
        )
        .select_from(Comment)
        .outerjoin(Profile, Profile.id == Comment.author_id)
        .subquery(COMMENT_SUMMARIES)
    )


def _message(exc: SQLAlchemyError) -> str:
    return str(getattr(exc, "orig", None) or exc)


def _to_row(obj: Base) -> Row:
    return {column.name: getattr(obj, column.name) for column in obj.__table__.columns}


class SqlRecordStore:
    """Record store over an async SQLAlchemy engine.

    Every call opens its own session, so callers may fan out several reads
    with ``asyncio.gather`` without sharing a connection.
    """

    def __init__(self, sessionmaker: async_sessionmaker[AsyncSession]) -> None:
        """Initialize the store with an async session factory."""
        self._sessionmaker = sessionmaker
        self._sources: dict[str, FromClause] = {
            name: model.__table__ for name, model in _TABLES.items()
        }
        self._sources[POST_SUMMARIES] = _post_summaries()
        self._sources[COMMENT_SUMMARIES] = _comment_summaries()

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        try:
            async with self._sessionmaker() as session, session.begin():
                yield session
        except SQLAlchemyError as exc:
            logger.warning("Record store rejected request: %s", _message(exc))
            raise StoreError(_message(exc)) from exc

    def _source(self, name: str) -> FromClause:
        try:
            return self._sources[name]
        except KeyError:
            raise StoreError(f'relation "{name}" does not exist') from None

    def _model(self, name: str) -> type[Base]:
        model = _TABLES.get(name)
        if model is None:
            if name in self._sources:
                raise StoreError(f'relation "{name}" is read-only')
            raise StoreError(f'relation "{name}" does not exist')
        return model

    @staticmethod
    def _column(source: FromClause, name: str) -> ColumnElement[Any]:
        try:
            return source.c[name]
        except KeyError:
            raise StoreError(f'column "{source.name}.{name}" does not exist') from None

    def _predicates(self, source: FromClause, eq: Mapping[str, Any] | None) -> list[ColumnElement[bool]]:
        predicates: list[ColumnElement[bool]] = []
        for name, value in (eq or {}).items():
            column = self._column(source, name)
            predicates.append(column.is_(None) if value is None else column == value)
        return predicates

    def _checked(self, model: type[Base], values: Mapping[str, Any]) -> dict[str, Any]:
        table = model.__table__
        for name in values:
            if name not in table.c:
                raise StoreError(f'column "{table.name}.{name}" does not exist')
        return dict(values)

    async def select(
        self,
        source: str,
        *,
        columns: Sequence[str] | None = None,
        eq: Mapping[str, Any] | None = None,
        any_eq: Mapping[str, Any] | None = None,
        order_by: Sequence[Order] = (),
    ) -> list[Row]:
        """Return rows from a table or summary matching the filters."""
        src = self._source(source)
        selected = [self._column(src, name) for name in columns] if columns else list(src.c)
        stmt = sa.select(*selected).select_from(src).where(*self._predicates(src, eq))
        if any_eq:
            stmt = stmt.where(sa.or_(*self._predicates(src, any_eq)))
        for order in order_by:
            column = self._column(src, order.column)
            stmt = stmt.order_by(column.asc() if order.ascending else column.desc())

        async with self._session() as session:
            result = await session.execute(stmt)
            return [dict(row._mapping) for row in result]

    async def select_one(
        self,
        source: str,
        *,
        columns: Sequence[str] | None = None,
        eq: Mapping[str, Any] | None = None,
    ) -> Row | None:
        """Return at most one row; more than one match is a store error."""
        rows = await self.select(source, columns=columns, eq=eq)
        if len(rows) > 1:
            raise StoreError(f"multiple ({len(rows)}) rows returned from {source}")
        return rows[0] if rows else None

    async def insert(self, table: str, rows: Mapping[str, Any] | Sequence[Mapping[str, Any]]) -> list[Row]:
        """Insert rows in one transaction and return them with defaults applied."""
        model = self._model(table)
        payload = [rows] if isinstance(rows, Mapping) else list(rows)
        objects = [model(**self._checked(model, row)) for row in payload]
        async with self._session() as session:
            session.add_all(objects)
            await session.flush()
            return [_to_row(obj) for obj in objects]

    async def update(self, table: str, values: Mapping[str, Any], *, eq: Mapping[str, Any]) -> list[Row]:
        """Apply ``values`` to every row matching ``eq``."""
        model = self._model(table)
        if not eq:
            raise StoreError("UPDATE requires a WHERE clause")
        changes = self._checked(model, values)
        predicates = self._predicates(model.__table__, eq)
        async with self._session() as session:
            objects = (await session.scalars(sa.select(model).where(*predicates))).all()
            for obj in objects:
                for name, value in changes.items():
                    setattr(obj, name, value)
            await session.flush()
            return [_to_row(obj) for obj in objects]

    async def delete(self, table: str, *, eq: Mapping[str, Any]) -> int:
        """Delete matching rows together with the rows they own."""
        model = self._model(table)
        if not eq:
            raise StoreError("DELETE requires a WHERE clause")
        predicates = self._predicates(model.__table__, eq)
        async with self._session() as session:
            for child_name, key in _CASCADES.get(table, ()):
                doomed = sa.select(model.__table__.c.id).where(*predicates)
                child = _TABLES[child_name].__table__
                await session.execute(sa.delete(child).where(child.c[key].in_(doomed)))
            result = await session.execute(sa.delete(model).where(*predicates))
            return result.rowcount or 0

    async def upsert(self, table: str, row: Mapping[str, Any], *, on_conflict: Sequence[str]) -> Row:
        """Insert ``row`` or overwrite the existing row with the same conflict key."""
        model = self._model(table)
        values = self._checked(model, row)
        missing = [name for name in on_conflict if name not in values]
        if missing:
            raise StoreError(f"conflict columns missing from row: {', '.join(missing)}")
        key = {name: values[name] for name in on_conflict}
        async with self._session() as session:
            existing = (
                await session.scalars(sa.select(model).where(*self._predicates(model.__table__, key)))
            ).first()
            if existing is None:
                existing = model(**values)
                session.add(existing)
            else:
                for name, value in values.items():
                    setattr(existing, name, value)
            await session.flush()
            return _to_row(existing)
