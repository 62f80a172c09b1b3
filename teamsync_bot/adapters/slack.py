"""Slack adapter implementing :class:`~teamsync_bot.adapters.base.ChatAdapter`.

Like the other adapters it talks to the Web API directly through
:mod:`httpx`, which keeps the implementation dependency light while remaining
fully asynchronous.
"""

from __future__ import annotations

import json
from typing import Any

import httpx

from ..core.errors import RemoteCallFailure
from ..core.models import SlackProfile
from .base import ChatAdapter
from .http import DEFAULT_TIMEOUT, send


class SlackAdapter(ChatAdapter):
    """Adapter that sends requests directly to the Slack Web API."""

    api_base = "https://slack.com/api"
    page_size = 200

    def __init__(self, token: str, client: httpx.AsyncClient | None = None) -> None:
        """Store authentication ``token`` and optional HTTP ``client``."""
        self.token = token
        self.client = client or httpx.AsyncClient(timeout=DEFAULT_TIMEOUT)

    # ------------------------------------------------------------------
    async def _call(self, method: str, http_method: str = "GET", **kwargs: Any) -> dict[str, Any]:
        url = f"{self.api_base}/{method}"
        headers = {"Authorization": f"Bearer {self.token}"}
        response = await send(self.client, "slack", http_method, url, headers=headers, **kwargs)
        try:
            data: dict[str, Any] = response.json()
        except json.JSONDecodeError as exc:
            raise RemoteCallFailure(
                response.status_code, f"invalid JSON from {method}", "slack"
            ) from exc
        if not data.get("ok"):
            raise RemoteCallFailure(
                response.status_code, str(data.get("error") or "unknown_error"), "slack"
            )
        return data

    async def list_channel_members(self, channel_id: str) -> list[str]:
        """Return every member id of ``channel_id``, following cursors."""
        members: list[str] = []
        cursor = ""
        while True:
            params = {"channel": channel_id, "limit": self.page_size}
            if cursor:
                params["cursor"] = cursor
            data = await self._call("conversations.members", params=params)
            members.extend(data.get("members") or [])
            cursor = (data.get("response_metadata") or {}).get("next_cursor") or ""
            if not cursor:
                return members

    async def get_user_profile(self, user_id: str) -> SlackProfile:
        data = await self._call("users.profile.get", params={"user": user_id})
        return SlackProfile.model_validate(data.get("profile") or {})

    async def send_message(self, channel_id: str, content: str) -> None:
        """Send a message to a channel.

        Parameters
        ----------
        channel_id:
            Identifier of the Slack channel, or a user id for a direct message.
        content:
            Message body to send.

        """
        await self._call(
            "chat.postMessage", "POST", json={"channel": channel_id, "text": content}
        )

    async def close(self) -> None:
        """Close the underlying :class:`httpx.AsyncClient`."""
        await self.client.aclose()
