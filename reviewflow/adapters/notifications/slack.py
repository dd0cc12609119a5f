"""Slack Web API client used for the member directory and direct messages.

Wraps ``slack_sdk.WebClient``; each call runs in a worker thread via
``asyncio.to_thread`` so a slow Slack request only suspends the webhook
handler that issued it.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

from slack_sdk import WebClient
from slack_sdk.errors import SlackApiError

logger = logging.getLogger(__name__)

#: Page size for ``users.list``; Slack recommends at most 200.
MEMBERS_PAGE_SIZE = 200


@dataclass
class SlackMessage:
    """A direct message with an optional quoted secondary block."""

    text: str
    secondary_text: str | None = None


def build_blocks(message: SlackMessage) -> list[dict[str, Any]]:
    """Convert a SlackMessage into Block Kit blocks."""
    blocks: list[dict[str, Any]] = [
        {
            "type": "section",
            "text": {"type": "mrkdwn", "text": message.text},
        }
    ]
    if message.secondary_text:
        blocks.append(
            {
                "type": "context",
                "elements": [{"type": "mrkdwn", "text": message.secondary_text}],
            }
        )
    return blocks


class SlackClient:
    """Thin async facade over the Slack Web API.

    Args:
        token: Slack bot OAuth token (``xoxb-...``).
    """

    def __init__(self, token: str, client: WebClient | None = None):
        self._client = client or WebClient(token=token)

    async def list_members(self) -> list[dict[str, Any]]:
        """Return every workspace member, following cursor pagination."""
        members: list[dict[str, Any]] = []
        cursor = None
        while True:
            kwargs: dict[str, Any] = {"limit": MEMBERS_PAGE_SIZE}
            if cursor:
                kwargs["cursor"] = cursor
            response = await asyncio.to_thread(self._client.users_list, **kwargs)
            members.extend(response.get("members", []) or [])
            cursor = (response.get("response_metadata") or {}).get("next_cursor")
            if not cursor:
                return members

    async def open_im(self, user_id: str) -> str:
        """Open (or reuse) a one-to-one IM channel and return its id."""
        response = await asyncio.to_thread(self._client.conversations_open, users=user_id)
        return response["channel"]["id"]

    async def post_message(self, channel: str, message: SlackMessage) -> str:
        """Post *message* to *channel*; returns the Slack ``ts`` of the message."""
        try:
            response = await asyncio.to_thread(
                self._client.chat_postMessage,
                channel=channel,
                text=message.text,
                blocks=build_blocks(message),
                unfurl_links=False,
            )
            return response["ts"]
        except SlackApiError as exc:
            logger.error("Slack post_message failed: %s", exc.response["error"])
            raise
