"""Chat notifications sent when a docs PR is opened or reused.

Design notes:
- Uses the Slack Web API directly over httpx (chat.postMessage)
- Slack reports most failures as HTTP 200 with {"ok": false, "error": ...},
  so the body is checked, not just the status code
- Same Protocol + Mock pattern as the other external collaborators
"""

from __future__ import annotations

import os
from typing import Protocol

import httpx

from docs_sync.errors import UpstreamError
from docs_sync.logging_config import get_logger
from docs_sync.schemas import NotificationMessage

logger = get_logger(__name__)

# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


class NotifierProtocol(Protocol):
    """Posts a text message to a named channel."""

    async def notify(self, channel: str, text: str) -> bool:
        ...


# ---------------------------------------------------------------------------
# Slack Implementation
# ---------------------------------------------------------------------------


class SlackNotifier:
    """Posts messages with a Slack bot token.

    API docs: https://api.slack.com/methods/chat.postMessage
    """

    BASE_URL = "https://slack.com/api"

    def __init__(
        self,
        token: str | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._token = token or os.environ.get("SLACK_BOT_TOKEN", "")
        self._timeout = timeout
        self._transport = transport

    async def notify(self, channel: str, text: str) -> bool:
        """Post text to channel.

        Raises:
            UpstreamError: If the request fails or Slack answers ok=false
        """
        try:
            async with httpx.AsyncClient(
                base_url=self.BASE_URL,
                headers={"Authorization": f"Bearer {self._token}"},
                timeout=self._timeout,
                transport=self._transport,
            ) as client:
                resp = await client.post(
                    "/chat.postMessage",
                    json={"channel": channel, "text": text},
                )
                resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise UpstreamError(
                f"Slack chat.postMessage failed with {exc.response.status_code}",
                status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            raise UpstreamError(f"Slack chat.postMessage failed: {exc}") from exc

        data = resp.json()
        if not data.get("ok"):
            raise UpstreamError(
                f"Slack chat.postMessage failed: {data.get('error', 'unknown_error')}"
            )
        logger.info("notification_sent", channel=channel)
        return True


# ---------------------------------------------------------------------------
# Mock Implementation
# ---------------------------------------------------------------------------


class MockNotifier:
    """Records messages instead of sending them."""

    def __init__(self) -> None:
        self.messages: list[NotificationMessage] = []

    async def notify(self, channel: str, text: str) -> bool:
        self.messages.append(NotificationMessage(channel=channel, text=text))
        return True
