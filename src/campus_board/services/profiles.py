"""Profile session, profile edits and the student directory."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from campus_board.core.errors import InvalidInputError, NotFoundError, StoreError
from campus_board.db.time import utcnow
from campus_board.schemas.profile import ProfileRecord, ProfileUpdate
from campus_board.store.base import PROFILES, RecordStore, asc

from .identity import IdentityProvider, Principal
from .refresh import LoadGuard

logger = logging.getLogger(__name__)

FALLBACK_NAME = "User"


def normalize_profile(raw: Mapping[str, Any] | None) -> ProfileRecord | None:
    """Return a profile record, or ``None`` for rows without id or name."""
    if not raw or not raw.get("id") or not raw.get("name"):
        return None
    data = dict(raw)
    data["role"] = "admin" if raw.get("role") == "admin" else "user"
    data["interests"] = list(raw.get("interests") or [])
    return ProfileRecord.model_validate(data)


def can_delete(profile: ProfileRecord | None, author_id: str) -> bool:
    """Return True if ``profile`` may delete content written by ``author_id``.

    This only decides what the UI offers; the store must enforce the same
    author-or-admin rule on its side.
    """
    if profile is None:
        return False
    return profile.role == "admin" or profile.id == author_id


class ProfileSession:
    """Signed-in principal and its profile, with an explicit lifecycle.

    ``load`` on start, ``refresh`` on demand, ``clear`` on sign-out, and
    ``on_identity_change`` as the listener for session changes.
    """

    def __init__(self, store: RecordStore) -> None:
        """Create an empty session bound to ``store``."""
        self.store = store
        self.principal: Principal | None = None
        self.profile: ProfileRecord | None = None
        self.error: str | None = None
        self.is_loading = True
        self._guard = LoadGuard()

    @property
    def is_admin(self) -> bool:
        """Return True when the loaded profile has the admin role."""
        return self.profile is not None and self.profile.role == "admin"

    async def start(self, provider: IdentityProvider) -> ProfileRecord | None:
        """Read the current session from ``provider`` and load its profile."""
        return await self.load(await provider.get_current_session())

    async def load(self, principal: Principal | None) -> ProfileRecord | None:
        """Load the profile of ``principal``, creating it on first access."""
        token = self._guard.begin()
        self.error = None
        self.principal = principal
        if principal is None:
            self.profile = None
            self.is_loading = False
            return None

        profile: ProfileRecord | None = None
        error: str | None = None
        try:
            profile = await self._fetch_or_create(principal)
        except StoreError as exc:
            error = str(exc)
            logger.warning("Could not load profile for %s: %s", principal.id, exc)

        if not self._guard.is_current(token):
            return self.profile
        self.profile = profile
        self.error = error
        self.is_loading = False
        return profile

    async def _fetch_or_create(self, principal: Principal) -> ProfileRecord | None:
        row = await self.store.select_one(PROFILES, eq={"id": principal.id})
        if row is not None:
            return normalize_profile(row)

        metadata = principal.metadata
        name = metadata.get("name") or principal.email or FALLBACK_NAME
        await self.store.insert(
            PROFILES,
            {"id": principal.id, "name": name, "username": metadata.get("username")},
        )
        logger.info("Created profile for %s", principal.id)
        return normalize_profile(await self.store.select_one(PROFILES, eq={"id": principal.id}))

    async def on_identity_change(self, principal: Principal | None) -> ProfileRecord | None:
        """Reload whenever the identity provider reports a new session."""
        return await self.load(principal)

    async def refresh(self) -> ProfileRecord | None:
        """Reload the profile of the current principal."""
        return await self.load(self.principal)

    def clear(self) -> None:
        """Forget the principal and profile (sign-out)."""
        self._guard.invalidate()
        self.principal = None
        self.profile = None
        self.error = None
        self.is_loading = False


def _blank_to_none(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


async def update_profile(store: RecordStore, profile_id: str, changes: ProfileUpdate) -> ProfileRecord:
    """Save the owner's edits; blank optional fields become null."""
    name = changes.name.strip()
    if not name:
        raise InvalidInputError("Name is required")
    values: dict[str, Any] = {
        field_name: _blank_to_none(getattr(changes, field_name))
        for field_name in (
            "username", "class_number", "bio", "mbti", "toefl", "sat",
            "ap", "other_scores", "gpa", "best_subject",
        )
    }
    values["name"] = name
    values["grade"] = changes.grade
    values["updated_at"] = utcnow()

    rows = await store.update(PROFILES, values, eq={"id": profile_id})
    profile = normalize_profile(rows[0]) if rows else None
    if profile is None:
        raise NotFoundError("Profile not found")
    logger.info("Updated profile %s", profile_id)
    return profile


async def _save_interests(store: RecordStore, profile: ProfileRecord, interests: list[str]) -> ProfileRecord:
    rows = await store.update(
        PROFILES,
        {"interests": interests, "updated_at": utcnow()},
        eq={"id": profile.id},
    )
    updated = normalize_profile(rows[0]) if rows else None
    if updated is None:
        raise NotFoundError("Profile not found")
    return updated


async def add_interest(store: RecordStore, profile: ProfileRecord, interest: str) -> ProfileRecord:
    """Append an interest; blank or duplicate entries leave the profile as is."""
    tag = interest.strip()
    if not tag or tag in profile.interests:
        return profile
    return await _save_interests(store, profile, [*profile.interests, tag])


async def remove_interest(store: RecordStore, profile: ProfileRecord, interest: str) -> ProfileRecord:
    """Drop an interest from the profile."""
    if interest not in profile.interests:
        return profile
    return await _save_interests(store, profile, [tag for tag in profile.interests if tag != interest])


async def get_profile(store: RecordStore, profile_id: str) -> ProfileRecord | None:
    """Return a single profile; ``None`` when it does not exist."""
    return normalize_profile(await store.select_one(PROFILES, eq={"id": profile_id}))


async def list_directory(
    store: RecordStore,
    *,
    grade: int | None = None,
    query: str = "",
) -> list[ProfileRecord]:
    """List students by name, optionally narrowed by grade and a name search."""
    eq = {"grade": grade} if grade is not None else None
    rows = await store.select(PROFILES, eq=eq, order_by=[asc("name")])
    needle = query.strip().lower()
    profiles = [p for p in (normalize_profile(row) for row in rows) if p is not None]
    if needle:
        profiles = [p for p in profiles if needle in p.name.lower()]
    return profiles
