import os
from dataclasses import dataclass

from .core.models import (
    CHANNEL_TEAM_MAPPINGS,
    SHEET_MAPPINGS,
    ChannelTeamMapping,
    SheetMapping,
)

DEFAULT_REMINDER = "Hi! Please, remember to set your Github url in your profile."


@dataclass(frozen=True)
class Settings:
    slack_token: str
    # id of the custom Slack profile field holding the GitHub profile URL
    github_url_field: str = ""
    github_token: str = ""
    github_org: str = ""
    sheets_token: str = ""
    channel_teams: tuple[ChannelTeamMapping, ...] = ()
    sheets: tuple[SheetMapping, ...] = ()
    # keep reconciling later mappings after one of them failed
    continue_on_error: bool = False
    reminder_text: str = DEFAULT_REMINDER

    @property
    def github_enabled(self) -> bool:
        return bool(self.github_token and self.github_org)

    def team_for(self, channel_id: str) -> ChannelTeamMapping | None:
        return next((m for m in self.channel_teams if m.channel_id == channel_id), None)

    def sheet_for(self, channel_id: str) -> SheetMapping | None:
        return next((s for s in self.sheets if s.channel_id == channel_id), None)


def _flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in {"1", "true", "yes", "on"}


def load_settings() -> Settings:
    """Build :class:`Settings` from the environment.

    Mapping lists are JSON arrays; invalid JSON or entries raise
    :class:`pydantic.ValidationError`.
    """
    channel_teams = CHANNEL_TEAM_MAPPINGS.validate_json(
        os.getenv("CHANNEL_TEAM_MAPPINGS", "").strip() or "[]"
    )
    sheets = SHEET_MAPPINGS.validate_json(os.getenv("SHEET_MAPPINGS", "").strip() or "[]")
    return Settings(
        slack_token=os.getenv("SLACK_BOT_TOKEN", "").strip(),
        github_url_field=os.getenv("SLACK_GITHUB_URL_FIELD", "").strip(),
        github_token=os.getenv("GITHUB_TOKEN", "").strip(),
        github_org=os.getenv("GITHUB_ORG", "").strip(),
        sheets_token=os.getenv("GOOGLE_SHEETS_TOKEN", "").strip(),
        channel_teams=tuple(channel_teams),
        sheets=tuple(sheets),
        continue_on_error=_flag("SYNC_CONTINUE_ON_ERROR"),
        reminder_text=os.getenv("SYNC_REMINDER_TEXT", "").strip() or DEFAULT_REMINDER,
    )
