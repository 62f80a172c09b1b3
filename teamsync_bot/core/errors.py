"""Error kinds raised by the sync engine and typed failure records.

Failures stay structured (:class:`Failure`) while they travel through the
reconciler and the event handlers.  They are only rendered to text when they
reach a boundary that logs or displays them.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .models import ReconciliationOutcome, SyncEvent


class SyncError(Exception):
    """Base class for every error raised by ``teamsync_bot``."""


class MissingProfile(SyncError):
    """The user has no resolvable GitHub profile URL."""

    def __init__(self, user: str = "") -> None:
        self.user = user
        super().__init__(f"Missing Github profile for {user}" if user else "Missing Github profile")


class NotOrgMember(SyncError):
    def __init__(self, username: str, org: str) -> None:
        self.username = username
        self.org = org
        super().__init__(f"User {username} is not part of {org} organization")


class TeamReferenceMissing(SyncError):
    """The channel does not map to any configured team."""

    def __init__(self, channel_id: str) -> None:
        self.channel_id = channel_id
        super().__init__(f"Unable to retrieve Github team reference for channel {channel_id}")


class RemoteCallFailure(SyncError):
    """A call to Slack, GitHub or Google Sheets failed.

    ``status`` is ``None`` for transport level failures (timeouts, refused
    connections) where no HTTP response was received.
    """

    def __init__(self, status: int | None, message: str = "", service: str = "") -> None:
        self.status = status
        self.message = message
        self.service = service
        super().__init__(self.detail)

    @property
    def detail(self) -> str:
        parts = [f"status: {self.status if self.status is not None else 'n/a'}"]
        if self.message:
            parts.append(f"data: {self.message}")
        return ", ".join(parts)


class LedgerError(SyncError):
    """Data or configuration inconsistency in a ledger sheet."""


class NoOpenEntry(LedgerError):
    def __init__(self, username: str) -> None:
        self.username = username
        super().__init__(f"Couldn't find previous entry for {username} in the spreadsheet")


class AlreadyClosed(LedgerError):
    def __init__(self, username: str) -> None:
        self.username = username
        super().__init__(f"{username}'s last entry in the spreadsheet already has an end date")


class InvalidRange(LedgerError):
    def __init__(self, data_range: str) -> None:
        self.data_range = data_range
        super().__init__(f"Invalid data range: {data_range}")


@dataclass(frozen=True)
class Failure:
    """A single user-level failure.

    ``kind`` names the cause (``HttpError``, ``NotOrgMember`` ...) and
    ``detail`` carries the human readable part.
    """

    user: str
    kind: str
    detail: str
    cause: BaseException | None = field(default=None, compare=False, repr=False)

    @classmethod
    def from_exception(cls, user: str, exc: BaseException) -> Failure:
        if isinstance(exc, RemoteCallFailure):
            return cls(user=user, kind="HttpError", detail=exc.detail, cause=exc)
        return cls(user=user, kind=type(exc).__name__, detail=str(exc), cause=exc)

    @property
    def is_missing_profile(self) -> bool:
        return isinstance(self.cause, MissingProfile)

    def render(self) -> str:
        return f"{self.kind}({self.detail})"


def render_failures(failures: Iterable[Failure]) -> str:
    """Render failures one per line, grouped under the user they belong to."""
    return "\n".join(f"{f.user}: {f.render()}" for f in failures)


class ReconciliationFailed(SyncError):
    """One or more mappings finished with per-user failures.

    ``outcomes`` holds every mapping processed so far, including the failing
    ones, so completed additions and removals are still reported.
    """

    def __init__(self, outcomes: Sequence[ReconciliationOutcome]) -> None:
        self.outcomes = list(outcomes)
        super().__init__(self._summary())

    @property
    def failures(self) -> list[Failure]:
        return [f for outcome in self.outcomes for f in outcome.failures]

    def _summary(self) -> str:
        lines = ["Some errors occurred during sync:"]
        for outcome in self.outcomes:
            if not outcome.failures:
                continue
            lines.append(f"#{outcome.channel_id} -> {outcome.team_slug}:")
            lines.extend(f"  {f.user}: {f.render()}" for f in outcome.failures)
        return "\n".join(lines)


class EventFailed(SyncError):
    """Aggregate of the failures produced while handling a single event."""

    def __init__(self, event: SyncEvent, failures: Sequence[Failure]) -> None:
        self.event = event
        self.failures = list(failures)
        super().__init__(
            f"Failed handling {event.kind}. Reason(s):\n" + render_failures(self.failures)
        )

    @property
    def missing_profile(self) -> bool:
        return any(f.is_missing_profile for f in self.failures)

    @property
    def unexpected(self) -> list[Failure]:
        return [f for f in self.failures if not f.is_missing_profile]
