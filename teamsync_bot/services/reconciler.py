"""Batch reconciliation of every configured channel with its GitHub team.

Mappings are processed one after the other in configuration order.  Within a
mapping every channel member (and every leftover team member) is handled
concurrently, and a failure for one user never prevents the work for another
one from being attempted.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from ..config import Settings
from ..core.errors import Failure, MissingProfile, ReconciliationFailed, render_failures
from ..core.models import ChannelTeamMapping, ReconciliationOutcome
from ..data.ledger import LedgerStore
from .membership import MembershipService, settle

log = logging.getLogger("teamsync.reconciler")


class Reconciler:
    def __init__(self, members: MembershipService) -> None:
        self.members = members

    @property
    def settings(self) -> Settings:
        return self.members.settings

    async def reconcile(
        self, mappings: Iterable[ChannelTeamMapping] | None = None
    ) -> list[ReconciliationOutcome]:
        """Run one reconciliation pass.

        Raises :class:`ReconciliationFailed` when a mapping ends with
        failures.  Unless ``continue_on_error`` is set, the mappings after the
        failing one are not processed.
        """
        todo = list(self.settings.channel_teams if mappings is None else mappings)
        team = self.members.require_team()
        org_members = await team.list_org_members(self.members.org)
        log.info("Reconciling %d mapping(s), %d org members", len(todo), len(org_members))

        outcomes: list[ReconciliationOutcome] = []
        for position, mapping in enumerate(todo):
            outcome = await self.reconcile_mapping(mapping, org_members)
            outcomes.append(outcome)
            if outcome.ok:
                continue
            log.error(
                "Unable to fully sync #%s -> %s. Reason(s):\n%s",
                mapping.channel_id,
                mapping.team_slug,
                render_failures(outcome.failures),
            )
            if not self.settings.continue_on_error:
                skipped = [m.channel_id for m in todo[position + 1 :]]
                if skipped:
                    log.warning("Skipping remaining mappings: %s", ", ".join(skipped))
                raise ReconciliationFailed(outcomes)

        if any(not outcome.ok for outcome in outcomes):
            raise ReconciliationFailed(outcomes)
        return outcomes

    async def reconcile_mapping(
        self, mapping: ChannelTeamMapping, org_members: set[str]
    ) -> ReconciliationOutcome:
        outcome = ReconciliationOutcome(mapping.channel_id, mapping.team_slug)
        team = self.members.require_team()
        channel_result, team_result = await settle(
            self.members.chat.list_channel_members(mapping.channel_id),
            team.list_team_members(self.members.org, mapping.team_slug),
        )
        for label, result in (("channel", channel_result), ("team", team_result)):
            if isinstance(result, Exception):
                outcome.failures.append(Failure.from_exception(f"<{label}>", result))
        if outcome.failures:
            return outcome

        ledger = self.members.ledger_for(mapping.channel_id)
        # team members not (yet) seen in the channel
        remaining = {login.lower() for login in team_result}
        # usernames already claimed by a channel member in this pass
        claimed: set[str] = set()

        results = await settle(
            *(
                self._sync_channel_member(
                    mapping, user_id, org_members, remaining, claimed, ledger, outcome
                )
                for user_id in channel_result
            )
        )
        for user_id, result in zip(channel_result, results):
            if isinstance(result, Exception):
                outcome.failures.append(Failure.from_exception(user_id, result))

        await settle(
            *(
                self._remove_team_member(mapping, username, ledger, outcome)
                for username in sorted(remaining)
            )
        )
        log.info(
            "#%s -> %s: added %s, removed %s, %d failure(s)",
            mapping.channel_id,
            mapping.team_slug,
            outcome.added,
            outcome.removed,
            len(outcome.failures),
        )
        return outcome

    async def _sync_channel_member(
        self,
        mapping: ChannelTeamMapping,
        user_id: str,
        org_members: set[str],
        remaining: set[str],
        claimed: set[str],
        ledger: LedgerStore | None,
        outcome: ReconciliationOutcome,
    ) -> None:
        profile = await self.members.chat.get_user_profile(user_id)
        if profile.is_app:
            return
        try:
            username = self.members.username_for(profile)
        except MissingProfile:
            return
        if username not in org_members:
            return
        if username in claimed:
            log.info("%s resolves to %s, already handled in this pass", user_id, username)
            return
        claimed.add(username)
        if username in remaining:
            remaining.discard(username)
            return

        log.info("New user found: %s", username)
        actions = [self.members.add_to_team(mapping, username, check_org=False)]
        if ledger is not None:
            actions.append(self.members.record_join(ledger, profile.name, username))
        results = await settle(*actions)

        if not isinstance(results[0], Exception):
            outcome.added.append(username)
        outcome.failures.extend(
            Failure.from_exception(username, r) for r in results if isinstance(r, Exception)
        )

    async def _remove_team_member(
        self,
        mapping: ChannelTeamMapping,
        username: str,
        ledger: LedgerStore | None,
        outcome: ReconciliationOutcome,
    ) -> None:
        actions = [self.members.remove_from_team(mapping, username)]
        if ledger is not None:
            actions.append(self.members.record_leave(ledger, username))
        results = await settle(*actions)

        if not isinstance(results[0], Exception):
            outcome.removed.append(username)
        outcome.failures.extend(
            Failure.from_exception(username, r) for r in results if isinstance(r, Exception)
        )
