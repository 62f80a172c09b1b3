"""Business rules shared by the reconciler and the event handlers.

Everything that touches a single user lives here: resolving their username,
adding them to or removing them from a team, and writing their join, leave
and backfill rows to the ledger.
"""

from __future__ import annotations

import asyncio
import datetime
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from ..adapters.base import ChatAdapter, SheetAdapter, TeamAdapter
from ..config import Settings
from ..core.errors import AlreadyClosed, NoOpenEntry, NotOrgMember, TeamReferenceMissing
from ..core.identity import username_from_profile
from ..core.models import ChannelTeamMapping, SlackProfile
from ..data.ledger import JOIN_DATE, LEAVE_DATE, NAME, POSITION, USERNAME, LedgerStore

log = logging.getLogger("teamsync.membership")


async def settle(*aws: Awaitable[Any]) -> list[Any]:
    """Await ``aws`` together and return results or raised exceptions.

    Siblings are never cancelled when one of them fails.  Only
    :class:`Exception` subclasses are collected; anything else (cancellation,
    ``KeyboardInterrupt``) is re-raised.
    """
    results = await asyncio.gather(*aws, return_exceptions=True)
    for result in results:
        if isinstance(result, BaseException) and not isinstance(result, Exception):
            raise result
    return results


class MembershipService:
    def __init__(
        self,
        settings: Settings,
        *,
        chat: ChatAdapter,
        team: TeamAdapter | None = None,
        sheets: SheetAdapter | None = None,
        clock: Callable[[], datetime.datetime] | None = None,
    ) -> None:
        self.settings = settings
        self.chat = chat
        self.team = team
        self.sheets = sheets
        self.clock = clock

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------
    @property
    def org(self) -> str:
        return self.settings.github_org

    @property
    def github_enabled(self) -> bool:
        return self.team is not None and self.settings.github_enabled

    def mapping_for(self, channel_id: str) -> ChannelTeamMapping:
        mapping = self.settings.team_for(channel_id)
        if mapping is None:
            raise TeamReferenceMissing(channel_id)
        return mapping

    def ledger_for(self, channel_id: str) -> LedgerStore | None:
        """Ledger of ``channel_id`` or ``None`` when it has no sheet."""
        sheet = self.settings.sheet_for(channel_id)
        if sheet is None or self.sheets is None:
            return None
        return LedgerStore(self.sheets, sheet, clock=self.clock)

    def username_for(self, profile: SlackProfile) -> str:
        return username_from_profile(profile, self.settings.github_url_field)

    async def is_channel_member(self, channel_id: str, user_id: str) -> bool:
        return user_id in await self.chat.list_channel_members(channel_id)

    # ------------------------------------------------------------------
    # Team
    # ------------------------------------------------------------------
    def require_team(self) -> TeamAdapter:
        if self.team is None:
            raise RuntimeError("GitHub integration is not configured")
        return self.team

    async def add_to_team(
        self, mapping: ChannelTeamMapping, username: str, *, check_org: bool = True
    ) -> str:
        team = self.require_team()
        if check_org and not await team.is_org_member(self.org, username):
            raise NotOrgMember(username, self.org)
        state = await team.add_to_team(self.org, mapping.team_slug, username)
        log.info(
            "User %s added to team %r @ %r (%s)", username, mapping.team_slug, self.org, state
        )
        return state

    async def remove_from_team(self, mapping: ChannelTeamMapping, username: str) -> None:
        await self.require_team().remove_from_team(self.org, mapping.team_slug, username)
        log.info("User %s removed from team %r @ %r", username, mapping.team_slug, self.org)

    # ------------------------------------------------------------------
    # Ledger
    # ------------------------------------------------------------------
    async def record_join(self, ledger: LedgerStore, name: str, username: str) -> bool:
        """Append a join row unless the user already joined today.

        Returns ``True`` when a row was written.  A returning user keeps the
        display name and position of their previous row.
        """
        last = await ledger.find_last_row_by_username(username)
        today = ledger.today()
        if last and last.row[JOIN_DATE] == today:
            log.info("%s has already been added to the sheet today", username)
            return False

        previous = last.row if last else None
        row = [
            previous[NAME] if previous else name,
            previous[POSITION] if previous else "",
            today,
            "",
            "",
            username,
        ]
        await ledger.append(row)
        log.info(
            "Added join entry for %s (%s) (new hire? %s)",
            name,
            username,
            "No" if previous else "Yes",
        )
        return True

    async def record_anonymous_join(self, ledger: LedgerStore, name: str) -> None:
        """Append a join row for a user whose username is not known yet."""
        await ledger.append([name, "", ledger.today(), "", "", ""])
        log.info("Added join entry for %s (no github profile set currently)", name)

    async def record_leave(self, ledger: LedgerStore, username: str) -> None:
        """Close the user's open row with today's date.

        Raises :class:`NoOpenEntry` when the user has no row at all and
        :class:`AlreadyClosed` when the last row already has a leave date.
        """
        last = await ledger.find_last_row_by_username(username)
        if last is None:
            raise NoOpenEntry(username)
        if last.row[LEAVE_DATE]:
            raise AlreadyClosed(username)

        row = list(last.row)
        row[LEAVE_DATE] = ledger.today()
        await ledger.update(last.index, row)
        log.info("Set end date on last spreadsheet entry for %s", username)

    async def backfill_username(self, ledger: LedgerStore, name: str, username: str) -> bool:
        """Write ``username`` into the last row of ``name`` if it lacks one."""
        last = await ledger.find_last_row_by_display_name(name)
        if last is None or last.row[USERNAME]:
            log.info(
                "%s is either not in the sheet or already has a github profile set", name
            )
            return False

        # rows come back padded, so leave date and new hire marker stay as ""
        updated = list(last.row)
        updated[USERNAME] = username
        await ledger.update(last.index, updated)
        log.info("Updated sheet entry for %s, setting GitHub username to %s", name, username)
        return True
