"""In-memory stand-ins for Slack, GitHub and Google Sheets.

The fakes implement the adapter interfaces so the services can be exercised
without any network access.  They record every mutation for assertions.
"""

from __future__ import annotations

import asyncio
import datetime
import re
from typing import Any

import pytest

from teamsync_bot.adapters.base import ChatAdapter, SheetAdapter, TeamAdapter
from teamsync_bot.config import Settings
from teamsync_bot.core.errors import RemoteCallFailure
from teamsync_bot.core.models import ChannelTeamMapping, SheetMapping, SlackProfile
from teamsync_bot.services.membership import MembershipService

GITHUB_FIELD = "Xf0GITHUB"


def fixed_clock() -> datetime.datetime:
    return datetime.datetime(2026, 10, 19, 15, 30, tzinfo=datetime.UTC)


def profile(name: str, url: str | None = None, **extra: Any) -> SlackProfile:
    fields = {GITHUB_FIELD: {"value": url}} if url else []
    return SlackProfile.model_validate({"real_name": name, "fields": fields, **extra})


class FakeChat(ChatAdapter):
    def __init__(self) -> None:
        self.channels: dict[str, list[str]] = {}
        self.profiles: dict[str, SlackProfile] = {}
        self.broken_profiles: set[str] = set()
        self.sent: list[tuple[str, str]] = []
        self.closed = False

    async def list_channel_members(self, channel_id: str) -> list[str]:
        return list(self.channels.get(channel_id, []))

    async def get_user_profile(self, user_id: str) -> SlackProfile:
        await asyncio.sleep(0)
        if user_id in self.broken_profiles:
            raise RemoteCallFailure(500, "profile unavailable", "slack")
        return self.profiles[user_id]

    async def send_message(self, channel_id: str, content: str) -> None:
        self.sent.append((channel_id, content))

    async def close(self) -> None:
        self.closed = True


class FakeTeam(TeamAdapter):
    def __init__(self) -> None:
        self.org_members: set[str] = set()
        self.teams: dict[str, set[str]] = {}
        self.fail_add: set[str] = set()
        self.fail_remove: set[str] = set()
        self.calls: list[tuple[str, str, str]] = []
        self.org_failure: RemoteCallFailure | None = None
        self.closed = False

    async def list_org_members(self, org: str) -> set[str]:
        self.calls.append(("list_org", org, ""))
        if self.org_failure is not None:
            raise self.org_failure
        return set(self.org_members)

    async def list_team_members(self, org: str, team: str) -> set[str]:
        return set(self.teams.get(team, set()))

    async def is_org_member(self, org: str, username: str) -> bool:
        return username.lower() in {m.lower() for m in self.org_members}

    async def add_to_team(self, org: str, team: str, username: str) -> str:
        await asyncio.sleep(0)
        self.calls.append(("add", team, username))
        if username in self.fail_add:
            raise RemoteCallFailure(422, "Validation Failed", "github")
        self.teams.setdefault(team, set()).add(username)
        return "active"

    async def remove_from_team(self, org: str, team: str, username: str) -> None:
        await asyncio.sleep(0)
        self.calls.append(("remove", team, username))
        if username in self.fail_remove:
            raise RemoteCallFailure(404, "Not Found", "github")
        self.teams.setdefault(team, set()).discard(username)

    async def close(self) -> None:
        self.closed = True


class FakeSheets(SheetAdapter):
    """Sheets stand-in; like the real API it drops trailing empty cells on read."""

    def __init__(self, first_row: int = 2) -> None:
        self.first_row = first_row
        self.rows: dict[str, list[list[str]]] = {}
        self.writes: list[tuple[str, str, list[list[str]]]] = []
        self.closed = False

    async def get_values(self, spreadsheet_id: str, cell_range: str) -> list[list[str]]:
        result = []
        for row in self.rows.get(spreadsheet_id, []):
            trimmed = list(row)
            while trimmed and trimmed[-1] == "":
                trimmed.pop()
            result.append(trimmed)
        return result

    async def append_values(
        self, spreadsheet_id: str, cell_range: str, rows: list[list[str]]
    ) -> None:
        self.writes.append(("append", cell_range, rows))
        self.rows.setdefault(spreadsheet_id, []).extend(list(r) for r in rows)

    async def update_values(
        self, spreadsheet_id: str, cell_range: str, rows: list[list[str]]
    ) -> None:
        self.writes.append(("update", cell_range, rows))
        row_number = int(re.search(r"(\d+)$", cell_range).group(1))
        self.rows[spreadsheet_id][row_number - self.first_row] = list(rows[0])

    async def close(self) -> None:
        self.closed = True


def make_settings(**overrides: Any) -> Settings:
    values: dict[str, Any] = {
        "slack_token": "xoxb-test",
        "github_url_field": GITHUB_FIELD,
        "github_token": "ghs-test",
        "github_org": "acme",
        "sheets_token": "ya29-test",
        "channel_teams": (ChannelTeamMapping(channel_id="C1", team_slug="bench"),),
        "sheets": (
            SheetMapping(channel_id="C1", spreadsheet_id="sheet-1", data_range="Ledger!A2:F"),
        ),
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def make_profile():
    return profile


@pytest.fixture
def chat() -> FakeChat:
    return FakeChat()


@pytest.fixture
def team() -> FakeTeam:
    return FakeTeam()


@pytest.fixture
def sheets() -> FakeSheets:
    return FakeSheets()


@pytest.fixture
def make_members(chat: FakeChat, team: FakeTeam, sheets: FakeSheets):
    def factory(**overrides: Any) -> MembershipService:
        return MembershipService(
            make_settings(**overrides),
            chat=chat,
            team=team,
            sheets=sheets,
            clock=fixed_clock,
        )

    return factory
