"""Tests for the :mod:`teamsync_bot.adapters.slack` module."""

import asyncio
import json
from typing import Any

import httpx
import pytest

from teamsync_bot.adapters.slack import SlackAdapter
from teamsync_bot.core.errors import RemoteCallFailure


def run(coro: Any) -> Any:
    """Run an async coroutine synchronously for tests."""
    return asyncio.run(coro)


def adapter_for(handler) -> SlackAdapter:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return SlackAdapter("xoxb-TOKEN", client=client)


def test_list_channel_members_follows_cursor() -> None:
    """Every page of ``conversations.members`` is collected."""
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.url.params.get("cursor") == "next-1":
            return httpx.Response(200, json={"ok": True, "members": ["U3"]})
        return httpx.Response(
            200,
            json={
                "ok": True,
                "members": ["U1", "U2"],
                "response_metadata": {"next_cursor": "next-1"},
            },
        )

    members = run(adapter_for(handler).list_channel_members("C1"))

    assert members == ["U1", "U2", "U3"]
    assert seen[0].headers["Authorization"] == "Bearer xoxb-TOKEN"
    assert seen[0].url.path.endswith("/conversations.members")
    assert seen[0].url.params["channel"] == "C1"


def test_get_user_profile_parses_custom_fields() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["user"] == "U1"
        return httpx.Response(
            200,
            json={
                "ok": True,
                "profile": {
                    "real_name": "Alice",
                    "fields": {"Xf1": {"value": "https://github.com/alice", "alt": ""}},
                },
            },
        )

    profile = run(adapter_for(handler).get_user_profile("U1"))
    assert profile.name == "Alice"
    assert profile.field_value("Xf1") == "https://github.com/alice"


def test_send_message_posts_json() -> None:
    captured: dict[str, httpx.Request] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["request"] = request
        return httpx.Response(200, json={"ok": True})

    adapter = adapter_for(handler)
    run(adapter.send_message("U1", "hello"))

    request = captured["request"]
    assert request.method == "POST"
    assert request.url.path.endswith("/chat.postMessage")
    assert json.loads(request.content) == {"channel": "U1", "text": "hello"}
    run(adapter.close())


def test_api_errors_become_remote_call_failures() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"ok": False, "error": "channel_not_found"})

    with pytest.raises(RemoteCallFailure) as info:
        run(adapter_for(handler).list_channel_members("C404"))
    assert info.value.service == "slack"
    assert info.value.message == "channel_not_found"


def test_http_errors_keep_the_status() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(429, text="ratelimited")

    with pytest.raises(RemoteCallFailure) as info:
        run(adapter_for(handler).get_user_profile("U1"))
    assert info.value.status == 429
    assert info.value.detail == "status: 429, data: ratelimited"
