"""Slack directory: configured GitHub logins resolved to Slack members and IM channels."""

import logging

from slack_sdk.errors import SlackApiError

from reviewflow.adapters.notifications.slack import SlackClient, SlackMessage
from reviewflow.core.models import SlackMember

logger = logging.getLogger(__name__)


class SlackDirectory:
    """Resolved Slack members of one organization.

    Built once per organization by :meth:`build`; read-only afterwards.
    People without a Slack member or IM channel are still mentioned by their
    GitHub login and simply receive no direct messages.
    """

    def __init__(
        self,
        client: SlackClient | None,
        login_to_email: dict[str, str],
        members: dict[str, SlackMember],
        *,
        dry_run: bool = False,
    ):
        self._client = client
        self._login_to_email = dict(login_to_email)
        self._members = dict(members)
        self._dry_run = dry_run

    @classmethod
    async def build(
        cls,
        client: SlackClient | None,
        login_to_email: dict[str, str],
        *,
        dry_run: bool = False,
    ) -> "SlackDirectory":
        """Fetch the workspace directory once and open an IM channel per member."""
        if client is None:
            logger.warning("No Slack token configured: notifications are disabled")
            return cls(None, login_to_email, {}, dry_run=dry_run)

        workspace_members = await client.list_members()
        by_email = {}
        for member in workspace_members:
            email = ((member.get("profile") or {}).get("email") or "").lower()
            if email and not member.get("deleted"):
                by_email[email] = member

        members: dict[str, SlackMember] = {}
        for email in dict.fromkeys(login_to_email.values()):
            member = by_email.get(email.lower())
            if not member:
                logger.warning("Could not find Slack user %s", email)
                continue
            members[email] = SlackMember(email=email, user_id=member["id"])

        for member in members.values():
            try:
                member.im_channel_id = await client.open_im(member.user_id)
            except SlackApiError as exc:
                logger.warning(
                    "Could not open IM channel for %s (%s): %s",
                    member.email,
                    member.user_id,
                    exc.response.get("error", exc),
                )
            except Exception as exc:
                logger.warning("Could not open IM channel for %s (%s): %s", member.email, member.user_id, exc)

        logger.info(
            "Slack directory ready: %d/%d configured people resolved",
            len(members),
            len(set(login_to_email.values())),
        )
        return cls(client, login_to_email, members, dry_run=dry_run)

    def member_for(self, github_login: str) -> SlackMember | None:
        email = self._login_to_email.get(github_login)
        if not email:
            return None
        return self._members.get(email)

    def knows(self, github_login: str) -> bool:
        return self.member_for(github_login) is not None

    def mention(self, github_login: str) -> str:
        member = self.member_for(github_login)
        if member is None:
            return github_login
        return f"<@{member.user_id}>"

    async def post_message(self, github_login: str, message: SlackMessage) -> str | None:
        """DM *github_login*; returns the message ``ts`` or None when nothing was sent."""
        logger.info("send slack to %s: %s", github_login, message.text)
        if self._dry_run:
            return None

        member = self.member_for(github_login)
        if self._client is None or member is None or not member.im_channel_id:
            return None
        return await self._client.post_message(member.im_channel_id, message)

    def __len__(self) -> int:
        return len(self._members)
