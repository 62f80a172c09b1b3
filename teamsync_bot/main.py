from __future__ import annotations

import argparse
import asyncio
import json
import sys

from .adapters.github import GitHubAdapter
from .adapters.sheets import SheetsAdapter
from .adapters.slack import SlackAdapter
from pydantic import ValidationError

from .config import Settings, load_settings
from .core.errors import ReconciliationFailed, SyncError
from .logging_config import setup_logging
from .services.handlers import EventHandlers
from .services.membership import MembershipService
from .services.reconciler import Reconciler


def build_members(settings: Settings) -> MembershipService:
    return MembershipService(
        settings,
        chat=SlackAdapter(settings.slack_token),
        team=GitHubAdapter(settings.github_token) if settings.github_enabled else None,
        sheets=SheetsAdapter(settings.sheets_token) if settings.sheets else None,
    )


async def _close(members: MembershipService) -> None:
    for adapter in (members.chat, members.team, members.sheets):
        close = getattr(adapter, "close", None)
        if close is not None:
            await close()


async def run_sync(settings: Settings) -> int:
    log = setup_logging()
    members = build_members(settings)
    try:
        outcomes = await Reconciler(members).reconcile()
    except ReconciliationFailed as exc:
        log.error("%s", exc)
        return 1
    except SyncError as exc:
        log.error("Sync aborted: %s", exc)
        return 1
    finally:
        await _close(members)
    for outcome in outcomes:
        log.info(
            "#%s -> %s: +%d -%d",
            outcome.channel_id,
            outcome.team_slug,
            len(outcome.added),
            len(outcome.removed),
        )
    return 0


async def run_event(settings: Settings, payload: dict) -> int:
    log = setup_logging()
    members = build_members(settings)
    handlers = EventHandlers(members)
    try:
        try:
            event = await handlers.build_event(payload)
        except (SyncError, ValidationError) as exc:
            log.error("Unable to read event %r: %s", payload.get("type"), exc)
            return 1
        if event is not None:
            await handlers.dispatch(event)
    finally:
        await _close(members)
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="teamsync")
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("sync", help="reconcile every configured channel once")
    event_cmd = sub.add_parser("event", help="handle a single Slack event record")
    event_cmd.add_argument("file", nargs="?", type=argparse.FileType("r"), default=sys.stdin)
    args = parser.parse_args(argv)

    log = setup_logging()
    settings = load_settings()
    if not settings.slack_token:
        log.error(
            "SLACK_BOT_TOKEN is not set. "
            "Export it in your environment before running."
        )
        return 2

    if args.command == "sync":
        if not settings.github_enabled:
            log.error("GITHUB_TOKEN and GITHUB_ORG are required to reconcile teams.")
            return 2
        return asyncio.run(run_sync(settings))

    payload = json.load(args.file)
    return asyncio.run(run_event(settings, payload))


if __name__ == "__main__":
    raise SystemExit(main())
