"""Host session abstractions."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class HostActionError(RuntimeError):
    """Raised when executing a host action fails."""


class HostSession(ABC):
    """
    Interface to the live document the agent acts on.

    `attach` / `detach` bracket a run and are always called in pairs, as are
    `disable_extensions` / `reenable_extensions`.
    """

    @abstractmethod
    async def attach(self) -> int | str | None:
        """Attach the debugging channel to the active surface and return its id."""

    @abstractmethod
    async def detach(self, target_id: int | str | None) -> None:
        """Release the debugging channel."""

    async def disable_extensions(self) -> None:
        """Disable extensions that interfere with automation."""

    async def reenable_extensions(self) -> None:
        """Restore the extensions disabled by `disable_extensions`."""

    @abstractmethod
    async def pull_snapshot(self) -> str | None:
        """Return the simplified markup of the surface, or None if there is none."""

    @abstractmethod
    async def act(self, kind: str, args: dict[str, Any]) -> None:
        """
        Perform `click` or `setValue` with the validated arguments.

        Raises:
            HostActionError: the action could not be performed
        """
