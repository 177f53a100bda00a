"""Tests for the Slack notifier.

Run with: pytest tests/test_notify.py -v
"""

from __future__ import annotations

import json

import httpx
import pytest

from docs_sync.errors import UpstreamError
from docs_sync.notify import MockNotifier, SlackNotifier


def _slack(status: int, data: dict, seen: list[httpx.Request] | None = None) -> SlackNotifier:
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        return httpx.Response(status, json=data)

    return SlackNotifier(token="xoxb-test", transport=httpx.MockTransport(handler))


class TestSlackNotifier:
    @pytest.mark.asyncio
    async def test_posts_message(self) -> None:
        seen: list[httpx.Request] = []
        notifier = _slack(200, {"ok": True}, seen)

        assert await notifier.notify("#docs", "Docs PR opened") is True

        request = seen[0]
        assert request.url.path == "/api/chat.postMessage"
        assert request.headers["Authorization"] == "Bearer xoxb-test"
        assert json.loads(request.content) == {"channel": "#docs", "text": "Docs PR opened"}

    @pytest.mark.asyncio
    async def test_ok_false_is_upstream_error(self) -> None:
        notifier = _slack(200, {"ok": False, "error": "channel_not_found"})
        with pytest.raises(UpstreamError, match="channel_not_found"):
            await notifier.notify("#nope", "hi")

    @pytest.mark.asyncio
    async def test_http_error_is_upstream_error(self) -> None:
        notifier = _slack(500, {})
        with pytest.raises(UpstreamError) as exc_info:
            await notifier.notify("#docs", "hi")
        assert exc_info.value.status_code == 500


class TestMockNotifier:
    @pytest.mark.asyncio
    async def test_records_messages(self) -> None:
        notifier = MockNotifier()
        await notifier.notify("#docs", "one")
        await notifier.notify("#docs", "two")
        assert [m.text for m in notifier.messages] == ["one", "two"]
