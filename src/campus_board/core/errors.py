"""Error taxonomy shared by the store layer, services and API."""

from __future__ import annotations


class CampusBoardError(RuntimeError):
    """Base exception for all application-level failures."""


class StoreError(CampusBoardError):
    """Raised when the record or blob store rejects an operation.

    The message is the store's own text and is shown to the user verbatim.
    """


class InvalidInputError(CampusBoardError, ValueError):
    """Raised when required fields are missing before any request is issued."""


class PermissionDeniedError(CampusBoardError):
    """Raised when the principal is neither the owner nor an admin."""


class InvalidTransitionError(CampusBoardError):
    """Raised when a message status change is not allowed from its current state."""


class NotFoundError(CampusBoardError):
    """Raised when a mutation targets a row that is not in the loaded view."""
