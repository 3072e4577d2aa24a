"""Tests for the profile session, profile edits and the directory."""

from __future__ import annotations

import pytest

from campus_board.core.errors import InvalidInputError, NotFoundError, StoreError
from campus_board.schemas.profile import ProfileUpdate
from campus_board.services.identity import Principal
from campus_board.services.profiles import (
    ProfileSession,
    add_interest,
    can_delete,
    get_profile,
    list_directory,
    normalize_profile,
    remove_interest,
    update_profile,
)
from campus_board.store.base import PROFILES


def test_normalize_profile() -> None:
    assert normalize_profile(None) is None
    assert normalize_profile({"id": "x", "name": ""}) is None
    assert normalize_profile({"id": "", "name": "X"}) is None

    profile = normalize_profile({"id": "x", "name": "X", "role": "superuser", "interests": None})
    assert profile is not None
    assert profile.role == "user"
    assert profile.interests == []


def test_can_delete(alice, bob, admin) -> None:
    assert can_delete(alice, alice.id)
    assert not can_delete(bob, alice.id)
    assert can_delete(admin, alice.id)
    assert not can_delete(None, alice.id)


@pytest.mark.asyncio
async def test_first_access_creates_profile_with_fallbacks(store) -> None:
    session = ProfileSession(store)

    profile = await session.load(Principal(id="new-user", email="new@example.com"))

    assert profile is not None
    assert profile.name == "new@example.com"
    assert profile.username is None
    assert profile.role == "user"
    assert session.is_loading is False
    assert session.error is None
    assert await store.select_one(PROFILES, columns=["id"], eq={"id": "new-user"}) == {"id": "new-user"}


@pytest.mark.asyncio
async def test_metadata_name_and_username_are_used(store) -> None:
    session = ProfileSession(store)

    profile = await session.load(
        Principal(id="u1", email="u1@example.com", metadata={"name": "Minji", "username": "minji"})
    )

    assert profile.name == "Minji"
    assert profile.username == "minji"


@pytest.mark.asyncio
async def test_no_email_or_name_falls_back_to_user(store) -> None:
    profile = await ProfileSession(store).load(Principal(id="u2"))
    assert profile.name == "User"


@pytest.mark.asyncio
async def test_existing_profile_is_loaded_not_recreated(store, admin) -> None:
    session = ProfileSession(store)

    profile = await session.load(Principal(id=admin.id, email="someone-else@example.com"))

    assert profile.name == "Admin"
    assert session.is_admin


@pytest.mark.asyncio
async def test_store_error_is_kept_on_session(mocker) -> None:
    store = mocker.AsyncMock()
    store.select_one.side_effect = StoreError("JWT expired")
    session = ProfileSession(store)

    profile = await session.load(Principal(id="u3"))

    assert profile is None
    assert session.error == "JWT expired"
    assert session.is_loading is False


@pytest.mark.asyncio
async def test_refresh_clear_and_identity_change(store, alice, bob) -> None:
    session = ProfileSession(store)
    await session.on_identity_change(Principal(id=alice.id))
    assert session.profile.id == alice.id

    await store.update(PROFILES, {"bio": "Robotics"}, eq={"id": alice.id})
    refreshed = await session.refresh()
    assert refreshed.bio == "Robotics"

    session.clear()
    assert session.profile is None
    assert session.principal is None

    await session.on_identity_change(Principal(id=bob.id))
    assert session.profile.id == bob.id

    await session.on_identity_change(None)
    assert session.profile is None


@pytest.mark.asyncio
async def test_update_profile_blanks_become_null(store, alice) -> None:
    changes = ProfileUpdate(name="  Alice Kim ", grade=11, bio="   ", mbti="INTJ", username="")

    profile = await update_profile(store, alice.id, changes)

    assert profile.name == "Alice Kim"
    assert profile.grade == 11
    assert profile.bio is None
    assert profile.username is None
    assert profile.mbti == "INTJ"
    assert profile.updated_at is not None


@pytest.mark.asyncio
async def test_update_profile_requires_name_and_existing_row(store, alice) -> None:
    with pytest.raises(InvalidInputError):
        await update_profile(store, alice.id, ProfileUpdate(name="  "))
    with pytest.raises(NotFoundError):
        await update_profile(store, "ghost", ProfileUpdate(name="Ghost"))


@pytest.mark.asyncio
async def test_interests_are_trimmed_and_deduplicated(store, alice) -> None:
    profile = await add_interest(store, alice, "  robotics ")
    profile = await add_interest(store, profile, "robotics")
    profile = await add_interest(store, profile, "   ")
    profile = await add_interest(store, profile, "debate")
    assert profile.interests == ["robotics", "debate"]

    profile = await remove_interest(store, profile, "robotics")
    assert profile.interests == ["debate"]
    assert (await get_profile(store, alice.id)).interests == ["debate"]


@pytest.mark.asyncio
async def test_directory_filters(store, alice, bob, make_profile) -> None:
    make_profile("carol", "Carol", grade=10)

    everyone = await list_directory(store)
    assert [p.name for p in everyone] == ["Alice", "Bob", "Carol"]

    tenth = await list_directory(store, grade=10)
    assert [p.name for p in tenth] == ["Alice", "Carol"]

    search = await list_directory(store, query="CAR")
    assert [p.name for p in search] == ["Carol"]

    assert await get_profile(store, "ghost") is None
