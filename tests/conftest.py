# tests/conftest.py
from __future__ import annotations

from collections.abc import Callable, Iterator
from datetime import UTC, datetime, timedelta
from itertools import count
from pathlib import Path
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import NullPool

import campus_board.models  # noqa: F401  (populates Base.metadata)
from campus_board.db.session import Base, build_sessionmaker
from campus_board.main import app as fastapi_app
from campus_board.models import Comment, Message, Post, PostAttachment, Profile, Reaction
from campus_board.schemas.profile import ProfileRecord
from campus_board.services.identity import create_access_token
from campus_board.services.profiles import normalize_profile
from campus_board.store.blob import LocalBlobStore
from campus_board.store.sql import SqlRecordStore

PUBLIC_BASE_URL = "http://test/storage/v1/object/public"
BASE_TIME = datetime(2024, 3, 1, 9, 0, tzinfo=UTC)

_CLOCK = count(1)


def tick() -> datetime:
    """Return strictly increasing timestamps so ordering in tests is stable."""
    return BASE_TIME + timedelta(seconds=next(_CLOCK))


@pytest.fixture()
def database_path(tmp_path: Path) -> Path:
    return tmp_path / "campus_board.db"


@pytest.fixture()
def engine(database_path: Path) -> Iterator[Engine]:
    engine = create_engine(f"sqlite:///{database_path}")
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture()
def store(engine: Engine, database_path: Path) -> SqlRecordStore:
    """Async record store over the same file the sync engine seeded.

    ``NullPool`` keeps connections from outliving the event loop that opened
    them, so the store works from pytest-asyncio and TestClient alike.
    """
    async_engine = create_async_engine(f"sqlite+aiosqlite:///{database_path}", poolclass=NullPool)
    return SqlRecordStore(build_sessionmaker(async_engine))


@pytest.fixture()
def blobs(tmp_path: Path) -> LocalBlobStore:
    return LocalBlobStore(tmp_path / "storage", PUBLIC_BASE_URL)


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    with Session(engine, expire_on_commit=False) as session:
        yield session


def _persist(session: Session, obj: Any) -> Any:
    session.add(obj)
    session.commit()
    return obj


@pytest.fixture()
def make_profile(db_session: Session) -> Callable[..., ProfileRecord]:
    """Create a profile row and return it as a normalised record."""

    def _make(profile_id: str, name: str, **fields: Any) -> ProfileRecord:
        profile = _persist(db_session, Profile(id=profile_id, name=name, **fields))
        record = normalize_profile(
            {column.name: getattr(profile, column.name) for column in Profile.__table__.columns}
        )
        assert record is not None
        return record

    return _make


@pytest.fixture()
def alice(make_profile) -> ProfileRecord:
    return make_profile("alice", "Alice", grade=10, username="alice")


@pytest.fixture()
def bob(make_profile) -> ProfileRecord:
    return make_profile("bob", "Bob", grade=11, username="bob")


@pytest.fixture()
def admin(make_profile) -> ProfileRecord:
    return make_profile("admin", "Admin", role="admin")


@pytest.fixture()
def make_post(db_session: Session) -> Callable[..., Post]:
    def _make(author_id: str, title: str = "Robotics club", **fields: Any) -> Post:
        values: dict[str, Any] = {
            "category": "동아리",
            "content": f"{title} content",
            "created_at": tick(),
        }
        values.update(fields)
        return _persist(db_session, Post(author_id=author_id, title=title, **values))

    return _make


@pytest.fixture()
def make_comment(db_session: Session) -> Callable[..., Comment]:
    def _make(post_id: str, author_id: str, content: str = "Nice", **fields: Any) -> Comment:
        fields.setdefault("created_at", tick())
        return _persist(db_session, Comment(post_id=post_id, author_id=author_id, content=content, **fields))

    return _make


@pytest.fixture()
def make_reaction(db_session: Session) -> Callable[..., Reaction]:
    def _make(post_id: str, user_id: str, reaction: str = "like") -> Reaction:
        return _persist(db_session, Reaction(post_id=post_id, user_id=user_id, reaction=reaction))

    return _make


@pytest.fixture()
def make_attachment(db_session: Session) -> Callable[..., PostAttachment]:
    def _make(post_id: str, file_path: str, **fields: Any) -> PostAttachment:
        fields.setdefault("bucket", "post-images")
        return _persist(db_session, PostAttachment(post_id=post_id, file_path=file_path, **fields))

    return _make


@pytest.fixture()
def make_message(db_session: Session) -> Callable[..., Message]:
    def _make(sender_id: str, receiver_id: str, status: str = "pending", **fields: Any) -> Message:
        values: dict[str, Any] = {"type": "메시지", "content": "Hello", "created_at": tick()}
        values.update(fields)
        return _persist(
            db_session,
            Message(sender_id=sender_id, receiver_id=receiver_id, status=status, **values),
        )

    return _make


@pytest.fixture()
def app(store: SqlRecordStore, blobs: LocalBlobStore) -> Iterator[FastAPI]:
    """Application wired to the temporary stores; startup keeps them."""
    fastapi_app.state.store = store
    fastapi_app.state.blobs = blobs
    try:
        yield fastapi_app
    finally:
        fastapi_app.state.store = None
        fastapi_app.state.blobs = None


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


def _bearer(subject: str, **claims: Any) -> dict[str, str]:
    token = create_access_token(subject, **claims)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def make_headers() -> Callable[..., dict[str, str]]:
    """Authorization header factory for arbitrary subjects."""
    return _bearer


@pytest.fixture()
def alice_headers(alice: ProfileRecord) -> dict[str, str]:
    return _bearer(alice.id, email="alice@example.com")


@pytest.fixture()
def bob_headers(bob: ProfileRecord) -> dict[str, str]:
    return _bearer(bob.id, email="bob@example.com")


@pytest.fixture()
def admin_headers(admin: ProfileRecord) -> dict[str, str]:
    return _bearer(admin.id)
