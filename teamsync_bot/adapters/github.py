"""GitHub adapter implementing :class:`~teamsync_bot.adapters.base.TeamAdapter`.

Uses the REST API through :mod:`httpx`.  Listing endpoints follow the
``Link: rel="next"`` header so callers always receive complete sets.
"""

from __future__ import annotations

from typing import Any

import httpx

from ..core.errors import RemoteCallFailure
from .base import TeamAdapter
from .http import DEFAULT_TIMEOUT, send


class GitHubAdapter(TeamAdapter):
    """Adapter that sends requests directly to the GitHub REST API."""

    api_base = "https://api.github.com"
    page_size = 100

    def __init__(self, token: str, client: httpx.AsyncClient | None = None) -> None:
        """Store authentication ``token`` and optional HTTP ``client``."""
        self.token = token
        self.client = client or httpx.AsyncClient(timeout=DEFAULT_TIMEOUT)

    @property
    def headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }

    # ------------------------------------------------------------------
    async def _paginate(self, path: str) -> list[dict[str, Any]]:
        items: list[dict[str, Any]] = []
        url: str | None = f"{self.api_base}{path}"
        params: dict[str, Any] | None = {"per_page": self.page_size}
        while url:
            response = await send(
                self.client, "github", "GET", url, headers=self.headers, params=params
            )
            items.extend(response.json())
            url = response.links.get("next", {}).get("url")
            # the next link already carries the query string
            params = None
        return items

    async def list_org_members(self, org: str) -> set[str]:
        members = await self._paginate(f"/orgs/{org}/members")
        return {m["login"].lower() for m in members if m.get("login")}

    async def list_team_members(self, org: str, team: str) -> set[str]:
        members = await self._paginate(f"/orgs/{org}/teams/{team}/members")
        return {m["login"].lower() for m in members if m.get("login")}

    async def is_org_member(self, org: str, username: str) -> bool:
        """Tell whether ``username`` is a member of ``org``.

        GitHub answers 302 (towards the public membership endpoint) when the
        token cannot see private members.  Redirects are not followed and
        that answer counts as "not a member", like a 404.
        """
        url = f"{self.api_base}/orgs/{org}/members/{username}"
        try:
            await send(
                self.client, "github", "GET", url, headers=self.headers, follow_redirects=False
            )
        except RemoteCallFailure as exc:
            if exc.status in (302, 404):
                return False
            raise
        return True

    async def add_to_team(self, org: str, team: str, username: str) -> str:
        """Add or invite ``username``.

        GitHub sends an invitation when the user is not yet part of the
        organization, in which case the returned state is ``"pending"``.
        """
        url = f"{self.api_base}/orgs/{org}/teams/{team}/memberships/{username}"
        response = await send(self.client, "github", "PUT", url, headers=self.headers)
        return str(response.json().get("state", "active"))

    async def remove_from_team(self, org: str, team: str, username: str) -> None:
        url = f"{self.api_base}/orgs/{org}/teams/{team}/memberships/{username}"
        await send(self.client, "github", "DELETE", url, headers=self.headers)

    async def close(self) -> None:
        """Close the underlying :class:`httpx.AsyncClient`."""
        await self.client.aclose()
