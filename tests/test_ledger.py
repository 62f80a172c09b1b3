"""Tests for the ledger sheet helpers in :mod:`teamsync_bot.data.ledger`."""

import asyncio
import datetime
from typing import Any

import pytest

from teamsync_bot.core.errors import InvalidRange
from teamsync_bot.core.models import SheetMapping
from teamsync_bot.data.ledger import LedgerStore, format_ledger_date, pad_row, row_address


def run(coro: Any) -> Any:
    """Run an async coroutine synchronously for tests."""
    return asyncio.run(coro)


def clock() -> datetime.datetime:
    return datetime.datetime(2026, 10, 19, 23, 30, tzinfo=datetime.UTC)


@pytest.mark.parametrize(
    ("data_range", "index", "expected"),
    [
        ("sheet!C10:F50", 30, "sheet!C40"),
        ("A:B", 10, "A11"),
        ("Ledger!A2:F", 0, "Ledger!A2"),
        ("'Bench Data'!B3:G", 4, "'Bench Data'!B7"),
        ("Ledger", 4, "Ledger!A5"),
        ("Ledger!2:500", 3, "Ledger!5:5"),
    ],
)
def test_row_address(data_range: str, index: int, expected: str) -> None:
    assert row_address(data_range, index) == expected


@pytest.mark.parametrize("data_range", ["", "!!", "A1:B2:C3", "sheet name!A:B"])
def test_row_address_rejects_invalid_ranges(data_range: str) -> None:
    with pytest.raises(InvalidRange):
        row_address(data_range, 0)


def test_pad_row_fills_missing_cells() -> None:
    assert pad_row(["Alice", "Dev"]) == ["Alice", "Dev", "", "", "", ""]


def test_format_ledger_date_uses_timezone_and_locale() -> None:
    moment = clock()
    assert format_ledger_date(moment, "en-US", "UTC") == "10/19/2026"
    # already the next day in Tokyo
    assert format_ledger_date(moment, "en-US", "Asia/Tokyo") == "10/20/2026"
    assert format_ledger_date(moment, "en-GB", "UTC") == "19/10/2026"
    assert format_ledger_date(moment, "de_DE", "UTC") == "19.10.2026"
    assert format_ledger_date(moment, "en-CA", "UTC") == "2026-10-19"
    # unknown region falls back to the language entry
    assert format_ledger_date(moment, "fr-BE", "UTC") == "19/10/2026"


def _store(sheets, data_range: str = "Ledger!A2:F") -> LedgerStore:
    mapping = SheetMapping(channel_id="C1", spreadsheet_id="sheet-1", data_range=data_range)
    return LedgerStore(sheets, mapping, clock=clock)


def test_find_last_row_by_username_scans_backwards(sheets) -> None:
    sheets.rows["sheet-1"] = [
        ["A", "", "01/01/2026", "02/01/2026", "", "alice"],
        ["A", "", "03/01/2026", "", "", "alice"],
        ["A", "", "04/01/2026", "05/01/2026", "", "Alice"],
        ["B", "", "04/01/2026", "", "", "bob"],
    ]
    match = run(_store(sheets).find_last_row_by_username("ALICE"))
    assert match is not None
    assert match.index == 2
    assert match.row[3] == "05/01/2026"


def test_find_last_row_not_found(sheets) -> None:
    sheets.rows["sheet-1"] = [["Anon", "", "01/01/2026"]]
    store = _store(sheets)
    assert run(store.find_last_row_by_username("nobody")) is None
    assert run(store.find_last_row_by_display_name("Nobody")) is None


def test_find_last_row_by_display_name_pads_short_rows(sheets) -> None:
    sheets.rows["sheet-1"] = [
        ["Anon", "", "01/01/2026", "", "", "old"],
        ["Anon", "", "02/01/2026"],
    ]
    match = run(_store(sheets).find_last_row_by_display_name("Anon"))
    assert match.index == 1
    assert match.row == ["Anon", "", "02/01/2026", "", "", ""]


def test_find_last_row_by_display_name_requires_a_name(sheets) -> None:
    with pytest.raises(ValueError):
        run(_store(sheets).find_last_row_by_display_name(""))


def test_append_and_update_write_full_rows(sheets) -> None:
    store = _store(sheets)
    run(store.append(["Alice", "", store.today()]))
    run(store.update(0, ["Alice", "Dev", "10/19/2026", "", "", "alice"]))

    assert sheets.writes[0] == ("append", "Ledger!A2:F", [["Alice", "", "10/19/2026", "", "", ""]])
    assert sheets.writes[1][1] == "Ledger!A2"
    assert sheets.rows["sheet-1"] == [["Alice", "Dev", "10/19/2026", "", "", "alice"]]


def test_store_raises_invalid_range_for_updates(sheets) -> None:
    store = _store(sheets, data_range="not a range")
    with pytest.raises(InvalidRange):
        run(store.update(0, ["x"]))
