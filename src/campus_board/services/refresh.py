"""View refresh orchestration.

Views never patch their state after a write. A mutation is followed by a
full reload of everything the view shows, and derived structures (comment
tree, message partitions) are rebuilt from the fresh rows. Loads carry a
generation token so that a slow, older load cannot overwrite the result of
a newer one.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from campus_board.core.errors import CampusBoardError, StoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


def gathered_error(result: Any) -> str | None:
    """Return the store error of an `asyncio.gather` result, re-raising anything else."""
    if isinstance(result, StoreError):
        return str(result)
    if isinstance(result, BaseException):
        raise result
    return None


class LoadGuard:
    """Generation counter deciding whether a finished load may be committed."""

    def __init__(self) -> None:
        """Start at generation zero with no load in flight."""
        self._generation = 0

    @property
    def generation(self) -> int:
        """Return the generation of the most recently started load."""
        return self._generation

    def begin(self) -> int:
        """Start a new load and return its token."""
        self._generation += 1
        return self._generation

    def is_current(self, token: int) -> bool:
        """Return True if no newer load started and the view was not closed."""
        return token == self._generation

    def invalidate(self) -> None:
        """Discard every in-flight load (navigation away, unmount)."""
        self._generation += 1


@dataclass(frozen=True)
class MutationResult(Generic[R]):
    """Outcome of a mutation run through :meth:`ViewController.mutate`."""

    ok: bool
    value: R | None = None
    notice: str | None = None
    error: CampusBoardError | None = None


class ViewController(Generic[T]):
    """State holder for one view: loading flag, committed state and notice.

    Subclasses implement :meth:`_load`, which must turn partial failures
    into degraded sections instead of raising.
    """

    def __init__(self) -> None:
        """Create an empty controller; call :meth:`reload` to populate it."""
        self.state: T | None = None
        self.is_loading = False
        self.notice: str | None = None
        self._guard = LoadGuard()

    async def _load(self) -> T:
        raise NotImplementedError

    async def reload(self) -> T | None:
        """Fetch and rebuild the view, committing only if still current."""
        token = self._guard.begin()
        self.is_loading = True
        try:
            result = await self._load()
        except BaseException:
            if self._guard.is_current(token):
                self.is_loading = False
            raise

        if not self._guard.is_current(token):
            logger.debug(
                "%s discarded stale load %d (current %d)",
                type(self).__name__,
                token,
                self._guard.generation,
            )
            return self.state

        self.state = result
        self.is_loading = False
        return result

    async def mutate(self, operation: Callable[[], Awaitable[R]]) -> MutationResult[R]:
        """Run ``operation`` then reload; on failure keep the prior state.

        The failure message becomes :attr:`notice`. Nothing is retried.
        """
        self.notice = None
        try:
            value = await operation()
        except CampusBoardError as exc:
            self.notice = str(exc)
            logger.warning("%s mutation failed: %s", type(self).__name__, exc)
            return MutationResult(ok=False, notice=self.notice, error=exc)

        await self.reload()
        return MutationResult(ok=True, value=value)

    def close(self) -> None:
        """Stop committing results of loads that are still in flight."""
        self._guard.invalidate()
        self.is_loading = False
