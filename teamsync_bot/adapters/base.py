"""Base adapter interfaces for the three remote systems.

The services only depend on these interfaces so the HTTP implementations can
be swapped for in-memory fakes in the tests.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from ..core.models import SlackProfile


class ChatAdapter(ABC):
    """Abstract adapter for the chat platform (Slack)."""

    @abstractmethod
    async def list_channel_members(self, channel_id: str) -> list[str]:
        """Return the ids of every member of ``channel_id``."""

    @abstractmethod
    async def get_user_profile(self, user_id: str) -> SlackProfile:
        """Fetch the profile of ``user_id``."""

    @abstractmethod
    async def send_message(self, channel_id: str, content: str) -> None:
        """Send ``content`` to a channel or, given a user id, as a direct message."""


class TeamAdapter(ABC):
    """Abstract adapter for the code hosting platform (GitHub)."""

    @abstractmethod
    async def list_org_members(self, org: str) -> set[str]:
        """Return the lower-cased logins of every organization member."""

    @abstractmethod
    async def list_team_members(self, org: str, team: str) -> set[str]:
        """Return the lower-cased logins of every member of ``team``."""

    @abstractmethod
    async def is_org_member(self, org: str, username: str) -> bool:
        """Tell whether ``username`` belongs to ``org``."""

    @abstractmethod
    async def add_to_team(self, org: str, team: str, username: str) -> str:
        """Add ``username`` to ``team`` and return the membership state."""

    @abstractmethod
    async def remove_from_team(self, org: str, team: str, username: str) -> None:
        """Remove ``username`` from ``team``."""


class SheetAdapter(ABC):
    """Abstract adapter for the spreadsheet service (Google Sheets)."""

    @abstractmethod
    async def get_values(self, spreadsheet_id: str, cell_range: str) -> list[list[str]]:
        """Read the values of ``cell_range``, row major."""

    @abstractmethod
    async def append_values(
        self, spreadsheet_id: str, cell_range: str, rows: list[list[str]]
    ) -> None:
        """Append ``rows`` after the last row of ``cell_range``."""

    @abstractmethod
    async def update_values(
        self, spreadsheet_id: str, cell_range: str, rows: list[list[str]]
    ) -> None:
        """Overwrite the cells starting at ``cell_range`` with ``rows``."""
