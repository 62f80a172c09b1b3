"""Ledger sheet access: locating, appending and amending join/leave rows.

A ledger row is positional::

    0 display name | 1 position | 2 join date | 3 leave date | 4 new hire | 5 username

The Sheets API drops trailing empty cells, so every row read is padded back
to :data:`ROW_WIDTH` cells.  Lookups always scan backwards: the most recent
row of a user is the one that describes their current status.
"""

from __future__ import annotations

import datetime
import logging
import re
from collections.abc import Callable
from typing import NamedTuple
from zoneinfo import ZoneInfo

from ..adapters.base import SheetAdapter
from ..core.errors import InvalidRange
from ..core.models import SheetMapping

log = logging.getLogger("teamsync.ledger")

ROW_WIDTH = 6
NAME, POSITION, JOIN_DATE, LEAVE_DATE, NEW_HIRE, USERNAME = range(ROW_WIDTH)

A1_RANGE = re.compile(
    r"^(?P<sheet>[\"'].+[\"']|\w+)?!?(?P<range>[a-zA-Z]\w*:[a-zA-Z]\w*|\d+:\d+)?$"
)
_FIRST_ROW = re.compile(r"(\d+):")
_LEADING_COLUMN = re.compile(r"^[a-zA-Z]+")

# locale tag (or bare language) -> strftime pattern; anything else is month first
_DATE_PATTERNS = {
    "en": "%m/%d/%Y",
    "en-gb": "%d/%m/%Y",
    "en-au": "%d/%m/%Y",
    "en-nz": "%d/%m/%Y",
    "en-ie": "%d/%m/%Y",
    "en-in": "%d/%m/%Y",
    "en-ca": "%Y-%m-%d",
    "fr-ca": "%Y-%m-%d",
    "en-za": "%Y/%m/%d",
    "fr": "%d/%m/%Y",
    "es": "%d/%m/%Y",
    "it": "%d/%m/%Y",
    "pt": "%d/%m/%Y",
    "de": "%d.%m.%Y",
    "ru": "%d.%m.%Y",
    "pl": "%d.%m.%Y",
    "nl": "%d-%m-%Y",
    "sv": "%Y-%m-%d",
    "ja": "%Y/%m/%d",
    "zh": "%Y/%m/%d",
}


class LedgerMatch(NamedTuple):
    index: int
    row: list[str]


def pad_row(row: list[str]) -> list[str]:
    """Return ``row`` with missing trailing cells filled with ``""``."""
    cells = ["" if cell is None else str(cell) for cell in row]
    return cells + [""] * (ROW_WIDTH - len(cells))


def format_ledger_date(moment: datetime.datetime, locale: str, timezone: str) -> str:
    """Format ``moment`` as a two-digit day/month, four-digit year date string.

    The field order comes from a fixed table keyed by locale tag, then by
    bare language.  Tags it does not know fall back to the language entry or
    to ``MM/DD/YYYY``, so they may differ from what a full CLDR-aware
    formatter would print.
    """
    local = moment.astimezone(ZoneInfo(timezone))
    tag = locale.replace("_", "-").lower()
    pattern = _DATE_PATTERNS.get(tag) or _DATE_PATTERNS.get(tag.split("-")[0], "%m/%d/%Y")
    return local.strftime(pattern)


def row_address(data_range: str, index: int) -> str:
    """A1 address of the ``index``-th row (0 based) of ``data_range``.

    >>> row_address("sheet!C10:F50", 30)
    'sheet!C40'
    >>> row_address("A:B", 10)
    'A11'
    """
    match = A1_RANGE.match(data_range)
    if not match or not (match.group("sheet") or match.group("range")):
        raise InvalidRange(data_range)

    sheet = match.group("sheet") or ""
    span = match.group("range") or ""

    first = _FIRST_ROW.search(span)
    row = index + (int(first.group(1)) if first else 1)

    column = _LEADING_COLUMN.match(span)
    if column:
        target = f"{column.group(0)}{row}"
    elif span:
        target = f"{row}:{row}"
    else:
        target = f"A{row}"

    return f"{sheet}!{target}" if sheet else target


class LedgerStore:
    """Reads and writes the ledger of a single :class:`SheetMapping`."""

    def __init__(
        self,
        sheets: SheetAdapter,
        mapping: SheetMapping,
        clock: Callable[[], datetime.datetime] | None = None,
    ) -> None:
        self.sheets = sheets
        self.mapping = mapping
        self._clock = clock or (lambda: datetime.datetime.now(tz=datetime.UTC))

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    async def read_rows(self) -> list[list[str]]:
        rows = await self.sheets.get_values(self.mapping.spreadsheet_id, self.mapping.data_range)
        return [pad_row(row) for row in rows]

    async def find_last_row_by_username(self, username: str) -> LedgerMatch | None:
        wanted = username.lower()
        rows = await self.read_rows()
        for index in range(len(rows) - 1, -1, -1):
            cell = rows[index][USERNAME]
            if cell and cell.lower() == wanted:
                return LedgerMatch(index, rows[index])
        return None

    async def find_last_row_by_display_name(self, name: str) -> LedgerMatch | None:
        if not name:
            raise ValueError("expected a non-empty display name")
        rows = await self.read_rows()
        for index in range(len(rows) - 1, -1, -1):
            if rows[index][NAME] == name:
                return LedgerMatch(index, rows[index])
        return None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    async def append(self, row: list[str]) -> None:
        await self.sheets.append_values(
            self.mapping.spreadsheet_id, self.mapping.data_range, [pad_row(row)]
        )
        log.debug("appended %s to %s", row, self.mapping.spreadsheet_id)

    async def update(self, index: int, row: list[str]) -> None:
        address = self.row_address(index)
        await self.sheets.update_values(self.mapping.spreadsheet_id, address, [pad_row(row)])
        log.debug("updated %s with %s", address, row)

    def row_address(self, index: int) -> str:
        return row_address(self.mapping.data_range, index)

    def today(self) -> str:
        return format_ledger_date(self._clock(), self.mapping.locale, self.mapping.timezone)
