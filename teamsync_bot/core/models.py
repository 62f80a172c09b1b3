"""Data models for the sync engine's core entities.

Configuration entries, Slack profiles and incoming events are implemented
using :mod:`pydantic` so that they provide runtime validation when they are
read from the environment or from an event payload.  Per-run results are
plain dataclasses since they also carry exception objects.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Annotated, Any, Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, TypeAdapter, field_validator

from .errors import Failure


class ChannelTeamMapping(BaseModel):
    """Pairs a Slack channel with the GitHub team that mirrors it.

    Attributes
    ----------
    channel_id:
        Slack channel identifier, e.g. ``C0123456``.
    team_slug:
        Slug of the GitHub team inside the configured organization.

    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    channel_id: str = Field(validation_alias=AliasChoices("channel_id", "slackChannel"))
    team_slug: str = Field(validation_alias=AliasChoices("team_slug", "githubTeam"))


class SheetMapping(BaseModel):
    """Ledger sheet attached to a channel.

    Attributes
    ----------
    channel_id:
        Slack channel the ledger belongs to.
    spreadsheet_id:
        Google Sheets document identifier.
    data_range:
        A1 notation of the ledger data, e.g. ``Bench!A2:F``.
    locale:
        Locale deciding the day/month order of written dates.
    timezone:
        IANA timezone used to compute "today".

    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    channel_id: str = Field(validation_alias=AliasChoices("channel_id", "slackChannel"))
    spreadsheet_id: str = Field(validation_alias=AliasChoices("spreadsheet_id", "spreadsheetId"))
    data_range: str = Field(validation_alias=AliasChoices("data_range", "dataRange"))
    locale: str = "en-US"
    timezone: str = "UTC"

    @field_validator("timezone")
    @classmethod
    def _known_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"unknown timezone {value!r}") from exc
        return value


CHANNEL_TEAM_MAPPINGS = TypeAdapter(list[ChannelTeamMapping])
SHEET_MAPPINGS = TypeAdapter(list[SheetMapping])


class ProfileField(BaseModel):
    model_config = ConfigDict(extra="ignore")

    value: str = ""


class SlackProfile(BaseModel):
    """The subset of a Slack user profile the sync engine relies on."""

    model_config = ConfigDict(extra="ignore")

    real_name: str = ""
    real_name_normalized: str | None = None
    fields: dict[str, ProfileField] = Field(default_factory=dict)
    api_app_id: str | None = None
    bot_id: str | None = None
    is_bot: bool = False

    @field_validator("fields", mode="before")
    @classmethod
    def _empty_fields(cls, value: Any) -> Any:
        # Slack sends ``[]`` or ``null`` when no custom field is set.
        if not value:
            return {}
        return value

    @property
    def name(self) -> str:
        return self.real_name_normalized or self.real_name

    @property
    def is_app(self) -> bool:
        return bool(self.api_app_id or self.bot_id or self.is_bot)

    def field_value(self, field_id: str) -> str | None:
        entry = self.fields.get(field_id)
        return entry.value if entry and entry.value else None


class MemberJoined(BaseModel):
    kind: Literal["member_joined"] = "member_joined"
    channel_id: str
    user_id: str
    profile: SlackProfile


class MemberLeft(BaseModel):
    kind: Literal["member_left"] = "member_left"
    channel_id: str
    user_id: str
    profile: SlackProfile


class ProfileChanged(BaseModel):
    kind: Literal["profile_changed"] = "profile_changed"
    user_id: str
    profile: SlackProfile


SyncEvent = Annotated[MemberJoined | MemberLeft | ProfileChanged, Field(discriminator="kind")]
SYNC_EVENT = TypeAdapter(SyncEvent)

# Slack event ``type`` -> normalized event ``kind``
SLACK_EVENT_KINDS = {
    "member_joined_channel": "member_joined",
    "member_left_channel": "member_left",
    "user_change": "profile_changed",
}


@dataclass
class ReconciliationOutcome:
    """What a reconciliation pass did for one mapping."""

    channel_id: str
    team_slug: str
    added: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    failures: list[Failure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures
