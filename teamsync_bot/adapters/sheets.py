"""Google Sheets adapter implementing :class:`~teamsync_bot.adapters.base.SheetAdapter`."""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

import httpx

from .base import SheetAdapter
from .http import DEFAULT_TIMEOUT, send


class SheetsAdapter(SheetAdapter):
    """Adapter for the Sheets v4 ``values`` endpoints.

    ``token`` is an OAuth access token with the spreadsheets scope; obtaining
    and refreshing it is left to the deployment.
    """

    api_base = "https://sheets.googleapis.com/v4/spreadsheets"

    def __init__(self, token: str, client: httpx.AsyncClient | None = None) -> None:
        self.token = token
        self.client = client or httpx.AsyncClient(timeout=DEFAULT_TIMEOUT)

    def _url(self, spreadsheet_id: str, cell_range: str, suffix: str = "") -> str:
        return f"{self.api_base}/{spreadsheet_id}/values/{quote(cell_range, safe='')}{suffix}"

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}

    @staticmethod
    def _body(rows: list[list[str]]) -> dict[str, Any]:
        return {"majorDimension": "ROWS", "values": rows}

    async def get_values(self, spreadsheet_id: str, cell_range: str) -> list[list[str]]:
        response = await send(
            self.client,
            "sheets",
            "GET",
            self._url(spreadsheet_id, cell_range),
            headers=self._headers(),
            params={"majorDimension": "ROWS"},
        )
        # an empty range has no "values" key at all
        values = response.json().get("values") or []
        return [[str(cell) for cell in row] for row in values]

    async def append_values(
        self, spreadsheet_id: str, cell_range: str, rows: list[list[str]]
    ) -> None:
        await send(
            self.client,
            "sheets",
            "POST",
            self._url(spreadsheet_id, cell_range, ":append"),
            headers=self._headers(),
            params={"valueInputOption": "USER_ENTERED"},
            json=self._body(rows),
        )

    async def update_values(
        self, spreadsheet_id: str, cell_range: str, rows: list[list[str]]
    ) -> None:
        await send(
            self.client,
            "sheets",
            "PUT",
            self._url(spreadsheet_id, cell_range),
            headers=self._headers(),
            params={"valueInputOption": "USER_ENTERED"},
            json=self._body(rows),
        )

    async def close(self) -> None:
        await self.client.aclose()
