"""Shared API dependencies for authentication and common functionality."""

from typing import Annotated, TypeVar

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from campus_board.core.errors import (
    CampusBoardError,
    InvalidInputError,
    InvalidTransitionError,
    NotFoundError,
    PermissionDeniedError,
    StoreError,
)
from campus_board.schemas.profile import ProfileRecord
from campus_board.services.identity import JwtIdentityProvider, Principal
from campus_board.services.profiles import ProfileSession
from campus_board.services.refresh import MutationResult, ViewController
from campus_board.store.base import RecordStore
from campus_board.store.blob import BlobStore

T = TypeVar("T")

# HTTP Bearer scheme for JWT authentication
bearer_scheme = HTTPBearer(auto_error=False)


def get_store(request: Request) -> RecordStore:
    """Return the record store created at startup."""
    store: RecordStore = request.app.state.store
    return store


def get_blob_store(request: Request) -> BlobStore:
    """Return the blob store created at startup."""
    blobs: BlobStore = request.app.state.blobs
    return blobs


StoreDep = Annotated[RecordStore, Depends(get_store)]
BlobStoreDep = Annotated[BlobStore, Depends(get_blob_store)]


async def get_principal(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> Principal:
    """Get the authenticated principal from the bearer token.

    Raises:
        HTTPException: If the token is missing or invalid
    """
    provider = JwtIdentityProvider(credentials.credentials if credentials else None)
    principal = await provider.get_current_session()
    if principal is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return principal


PrincipalDep = Annotated[Principal, Depends(get_principal)]


async def get_current_profile(principal: PrincipalDep, store: StoreDep) -> ProfileRecord:
    """Load (or create on first access) the profile of the signed-in principal."""
    session = ProfileSession(store)
    profile = await session.load(principal)
    if session.error is not None:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=session.error)
    if profile is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Profile not available",
        )
    return profile


CurrentProfileDep = Annotated[ProfileRecord, Depends(get_current_profile)]

_STATUS_BY_ERROR: tuple[tuple[type[CampusBoardError], int], ...] = (
    (InvalidInputError, status.HTTP_400_BAD_REQUEST),
    (PermissionDeniedError, status.HTTP_403_FORBIDDEN),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (InvalidTransitionError, status.HTTP_409_CONFLICT),
    (StoreError, status.HTTP_502_BAD_GATEWAY),
)


def http_error(exc: CampusBoardError | None) -> HTTPException:
    """Translate an application error into the matching HTTP error."""
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=str(exc))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc) or "Request failed")


def raise_for_result(result: MutationResult) -> None:
    """Raise the HTTP error of a failed mutation."""
    if not result.ok:
        raise http_error(result.error)


def loaded_view(controller: ViewController[T]) -> T:
    """Return the controller's committed view.

    Raises:
        HTTPException: If no load has been committed yet
    """
    if controller.state is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="View is not loaded",
        )
    return controller.state
