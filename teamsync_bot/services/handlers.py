"""Single-event counterparts of the reconciler.

Each Slack notification (member joined, member left, profile changed) is
turned into a typed :data:`~teamsync_bot.core.models.SyncEvent` and handled
with the same rules the batch pass uses.  :meth:`EventHandlers.dispatch` is
the top-level entry point: it never raises, it logs.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable
from typing import Any, assert_never

from ..core.errors import EventFailed, Failure, MissingProfile, SyncError, render_failures
from ..core.models import (
    SLACK_EVENT_KINDS,
    SYNC_EVENT,
    ChannelTeamMapping,
    MemberJoined,
    MemberLeft,
    ProfileChanged,
    SlackProfile,
    SyncEvent,
)
from ..data.ledger import LedgerStore
from .membership import MembershipService, settle

log = logging.getLogger("teamsync.events")


class EventHandlers:
    def __init__(self, members: MembershipService) -> None:
        self.members = members

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------
    async def build_event(self, payload: dict[str, Any]) -> SyncEvent | None:
        """Turn a raw Slack event (or an already normalized record) into an event.

        The profile is fetched when the payload does not embed it.  Events
        for unconfigured channels and for Slack apps are dropped.
        """
        if "kind" in payload:
            return SYNC_EVENT.validate_python(payload)

        kind = SLACK_EVENT_KINDS.get(str(payload.get("type", "")))
        if kind is None:
            log.info("Event %r not supported", payload.get("type"))
            return None

        channel_id = payload.get("channel")
        if channel_id and self.members.settings.team_for(channel_id) is None:
            log.warning("%r is not a configured slack channel", channel_id)
            return None

        user = payload.get("user")
        if isinstance(user, dict):
            user_id = str(user.get("id", ""))
            raw_profile = user.get("profile")
            if raw_profile is not None:
                raw_profile = {**raw_profile, "is_bot": bool(user.get("is_bot"))}
        else:
            user_id = str(user or "")
            raw_profile = payload.get("userProfile")

        if raw_profile is None:
            profile = await self.members.chat.get_user_profile(user_id)
        else:
            profile = SlackProfile.model_validate(raw_profile)
        if profile.is_app:
            log.info("User %s is a Slack app, ignoring %s", user_id, kind)
            return None

        data: dict[str, Any] = {"kind": kind, "user_id": user_id, "profile": profile}
        if kind != "profile_changed":
            data["channel_id"] = channel_id
        return SYNC_EVENT.validate_python(data)

    async def dispatch(self, event: SyncEvent) -> None:
        """Handle ``event`` and log whatever went wrong."""
        try:
            match event:
                case MemberJoined():
                    await self.on_member_joined(event)
                case MemberLeft():
                    await self.on_member_left(event)
                case ProfileChanged():
                    await self.on_profile_changed(event)
                case _:
                    assert_never(event)
        except EventFailed as exc:
            self._log_failures(exc)
            if isinstance(event, MemberJoined) and exc.missing_profile:
                await self._remind(event.user_id)
        except SyncError as exc:
            log.error("Failed handling %s: %s", event.kind, exc)
        except Exception:
            log.exception("Unexpected error while handling %s", event.kind)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------
    async def on_member_joined(self, event: MemberJoined) -> None:
        log.info(
            "handling member join channel #%s event for %s", event.channel_id, event.profile.name
        )
        mapping = self.members.mapping_for(event.channel_id)
        actions: list[Awaitable[Any]] = []
        if self.members.github_enabled:
            actions.append(self._join_team(mapping, event.profile))
        ledger = self.members.ledger_for(event.channel_id)
        if ledger is not None:
            actions.append(self._join_ledger(ledger, event.profile))
        else:
            log.warning("no sheet config found, skipping spreadsheet integration")
        await self._run(event, actions)

    async def on_member_left(self, event: MemberLeft) -> None:
        log.info(
            "handling member left channel #%s event for %s", event.channel_id, event.profile.name
        )
        mapping = self.members.mapping_for(event.channel_id)
        actions: list[Awaitable[Any]] = []
        if self.members.github_enabled:
            actions.append(self._leave_team(mapping, event.profile))
        ledger = self.members.ledger_for(event.channel_id)
        if ledger is not None:
            actions.append(self._leave_ledger(ledger, event.profile))
        await self._run(event, actions)

    async def on_profile_changed(self, event: ProfileChanged) -> None:
        log.info("handling slack user profile change for %s", event.profile.name)
        try:
            username = self.members.username_for(event.profile)
        except MissingProfile:
            log.debug("%s has no github profile, nothing to refresh", event.profile.name)
            return

        results = await settle(
            *(
                self._refresh_mapping(mapping, event, username)
                for mapping in self.members.settings.channel_teams
            )
        )
        failures: list[Failure] = []
        for result in results:
            if isinstance(result, Exception):
                failures.append(Failure.from_exception(username, result))
            else:
                failures.extend(result)
        if failures:
            raise EventFailed(event, failures)

    # ------------------------------------------------------------------
    # Sub-actions
    # ------------------------------------------------------------------
    async def _join_team(self, mapping: ChannelTeamMapping, profile: SlackProfile) -> None:
        username = self.members.username_for(profile)
        await self.members.add_to_team(mapping, username)

    async def _join_ledger(self, ledger: LedgerStore, profile: SlackProfile) -> None:
        try:
            username = self.members.username_for(profile)
        except MissingProfile:
            await self.members.record_anonymous_join(ledger, profile.name)
            # still surfaced so the caller can remind the user
            raise
        await self.members.record_join(ledger, profile.name, username)

    async def _leave_team(self, mapping: ChannelTeamMapping, profile: SlackProfile) -> None:
        username = self.members.username_for(profile)
        await self.members.remove_from_team(mapping, username)

    async def _leave_ledger(self, ledger: LedgerStore, profile: SlackProfile) -> None:
        username = self.members.username_for(profile)
        await self.members.record_leave(ledger, username)

    async def _refresh_mapping(
        self, mapping: ChannelTeamMapping, event: ProfileChanged, username: str
    ) -> list[Failure]:
        """Re-add the user to the team and backfill their ledger row."""
        if not await self.members.is_channel_member(mapping.channel_id, event.user_id):
            return []

        actions: list[Awaitable[Any]] = []
        if self.members.github_enabled:
            actions.append(self.members.add_to_team(mapping, username, check_org=False))
        ledger = self.members.ledger_for(mapping.channel_id)
        if ledger is not None and event.profile.name:
            actions.append(self.members.backfill_username(ledger, event.profile.name, username))
        results = await settle(*actions)
        return [Failure.from_exception(username, r) for r in results if isinstance(r, Exception)]

    async def _run(self, event: MemberJoined | MemberLeft, actions: list[Awaitable[Any]]) -> None:
        results = await settle(*actions)
        user = event.profile.name or event.user_id
        failures = [Failure.from_exception(user, r) for r in results if isinstance(r, Exception)]
        if failures:
            raise EventFailed(event, failures)

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------
    def _log_failures(self, exc: EventFailed) -> None:
        if exc.missing_profile:
            log.warning("%s has no github profile set", exc.failures[0].user)
        unexpected = exc.unexpected
        if unexpected:
            log.error("Failed handling %s. Reason(s):\n%s", exc.event.kind, render_failures(unexpected))

    async def _remind(self, user_id: str) -> None:
        try:
            await self.members.chat.send_message(user_id, self.members.settings.reminder_text)
        except SyncError as exc:
            log.error("Unable to send profile reminder to %s: %s", user_id, exc)
        else:
            log.info("Sent github profile reminder to %s", user_id)
