"""Profile and student directory endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, HTTPException, Query, status

from campus_board.core.errors import CampusBoardError
from campus_board.schemas.profile import InterestCreate, ProfileRecord, ProfileUpdate
from campus_board.services import profiles as profile_service

from ..dependencies import CurrentProfileDep, StoreDep, http_error

router = APIRouter(prefix="/profiles", tags=["profiles"])


@router.get("/me", response_model=ProfileRecord)
async def get_my_profile(profile: CurrentProfileDep) -> ProfileRecord:
    """Get the caller's profile, creating it on first access."""
    return profile


@router.put("/me", response_model=ProfileRecord)
async def update_my_profile(
    changes: ProfileUpdate,
    store: StoreDep,
    profile: CurrentProfileDep,
) -> ProfileRecord:
    """Save the caller's profile; blank fields are cleared."""
    try:
        return await profile_service.update_profile(store, profile.id, changes)
    except CampusBoardError as exc:
        raise http_error(exc) from exc


@router.post("/me/interests", response_model=ProfileRecord)
async def add_interest(
    body: InterestCreate,
    store: StoreDep,
    profile: CurrentProfileDep,
) -> ProfileRecord:
    """Add an interest tag to the caller's profile."""
    try:
        return await profile_service.add_interest(store, profile, body.interest)
    except CampusBoardError as exc:
        raise http_error(exc) from exc


@router.delete("/me/interests/{interest}", response_model=ProfileRecord)
async def remove_interest(
    interest: str,
    store: StoreDep,
    profile: CurrentProfileDep,
) -> ProfileRecord:
    """Remove an interest tag from the caller's profile."""
    try:
        return await profile_service.remove_interest(store, profile, interest)
    except CampusBoardError as exc:
        raise http_error(exc) from exc


@router.get("/", response_model=list[ProfileRecord])
async def list_profiles(
    store: StoreDep,
    profile: CurrentProfileDep,
    grade: Annotated[int | None, Query(ge=1, le=12)] = None,
    q: Annotated[str, Query(max_length=100)] = "",
) -> list[ProfileRecord]:
    """Browse the student directory."""
    try:
        return await profile_service.list_directory(store, grade=grade, query=q)
    except CampusBoardError as exc:
        raise http_error(exc) from exc


@router.get("/{profile_id}", response_model=ProfileRecord)
async def get_profile(profile_id: str, store: StoreDep, profile: CurrentProfileDep) -> ProfileRecord:
    """Get one student's profile."""
    try:
        found = await profile_service.get_profile(store, profile_id)
    except CampusBoardError as exc:
        raise http_error(exc) from exc
    if found is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found")
    return found
