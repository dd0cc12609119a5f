"""Comment notification routing for pull request conversations.

A new comment is sent to the PR owner (unless they wrote it), to followers
(reviewers and requested reviewers), to people already in the review-comment
thread, and to anyone @mentioned in the thread. Each person is notified once
and the comment author never is.
"""

from __future__ import annotations

import asyncio
import logging
import re
from typing import TYPE_CHECKING, Any

from reviewflow.adapters.notifications.slack import SlackMessage
from reviewflow.core.repo_context import RepoContext
from reviewflow.core.utils.slackify import create_link, quote, slackify_comment_body
from reviewflow.webhooks.pr_handlers import pr_link

if TYPE_CHECKING:
    from reviewflow.runtime import ReviewflowRuntime

logger = logging.getLogger(__name__)

_MENTION_RE = re.compile(r"(?<![\w`/])@([A-Za-z0-9](?:-?[A-Za-z0-9]){0,38})\b")


def parse_mentions(body: str | None) -> list[str]:
    """GitHub logins @mentioned in *body*, in first-seen order."""
    mentions: list[str] = []
    for login in _MENTION_RE.findall(body or ""):
        if login not in mentions:
            mentions.append(login)
    return mentions


async def _get_discussion(
    repo_ctx: RepoContext, pr_number: int, comment: dict[str, Any]
) -> list[dict[str, Any]]:
    """Comments of the review thread *comment* belongs to."""
    thread_id = comment.get("in_reply_to_id")
    if not thread_id:
        return [comment]
    comments = await repo_ctx.github.list_review_comments(repo_ctx.full_name, pr_number)
    return [c for c in comments if c.get("in_reply_to_id") == thread_id or c.get("id") == thread_id]


def is_multiline_comment(comment: dict[str, Any]) -> bool:
    """True for a review comment anchored on a line range.

    Single-line review comments carry ``start_line: null`` and issue comments
    carry no ``start_line`` at all; both count as single-line.
    """
    return comment.get("start_line") is not None


def compute_recipients(
    pr: dict[str, Any],
    comment_author: str,
    reviewer_logins: list[str],
    discussion: list[dict[str, Any]],
) -> tuple[list[str], list[str], list[str]]:
    """Split recipients into (followers, users in thread, mentioned users)."""
    owner = pr["user"]["login"]
    excluded = {owner, comment_author}

    followers: list[str] = []
    candidates = reviewer_logins + [rr["login"] for rr in pr.get("requested_reviewers") or []]
    for login in candidates:
        if login not in excluded and login not in followers:
            followers.append(login)

    users_in_thread: list[str] = []
    for c in discussion:
        login = (c.get("user") or {}).get("login")
        if login and login not in excluded and login not in followers and login not in users_in_thread:
            users_in_thread.append(login)

    already = excluded | set(followers) | set(users_in_thread)
    mentions: list[str] = []
    for c in discussion:
        for login in parse_mentions(c.get("body")):
            if login not in already and login not in mentions:
                mentions.append(login)

    return followers, users_in_thread, mentions


async def handle_comment_created(
    runtime: ReviewflowRuntime, repo_ctx: RepoContext, payload: dict[str, Any]
) -> dict[str, Any]:
    comment = payload["comment"]
    if runtime.policy.is_this_bot(comment.get("user")):
        return {"status": "ignored_own_comment"}

    pr_number = runtime.policy.pull_request_number(payload)
    if pr_number is None:
        return {"status": "ignored_issue_comment"}

    body = comment.get("body")
    if not body:
        return {"status": "ignored_empty_comment", "pr": pr_number}

    pr = payload.get("pull_request")
    if not pr or "requested_reviewers" not in pr:
        pr = await repo_ctx.github.get_pull(repo_ctx.full_name, pr_number)

    author = comment["user"]["login"]
    owner = pr["user"]["login"]
    discussion, snapshot = await asyncio.gather(
        _get_discussion(repo_ctx, pr_number, comment),
        repo_ctx.review_snapshot(pr),
    )
    followers, users_in_thread, mentions = compute_recipients(
        pr,
        author,
        [review.login for review in snapshot.reviews],
        discussion,
    )
    mentions = [login for login in mentions if repo_ctx.slack.knows(login)]

    slack = repo_ctx.slack
    link = create_link(comment["html_url"], "replied" if comment.get("in_reply_to_id") else "commented")
    secondary = quote(slackify_comment_body(body, multiline=is_multiline_comment(comment)))

    def create_message(to_owner: bool) -> SlackMessage:
        if to_owner:
            owner_part = "your PR"
        elif owner == author:
            owner_part = "their PR"
        else:
            owner_part = f"{slack.mention(owner)}'s PR"
        return SlackMessage(
            text=f":speech_balloon: {slack.mention(author)} {link} on {owner_part} {pr_link(pr, repo_ctx)}",
            secondary_text=secondary,
        )

    sends = []
    if owner != author:
        sends.append((owner, create_message(True)))
    message = create_message(False)
    sends.extend((login, message) for login in followers + users_in_thread + mentions)

    results = await asyncio.gather(
        *(repo_ctx.post_message(login, msg) for login, msg in sends),
        return_exceptions=True,
    )
    for (login, _), result in zip(sends, results):
        if isinstance(result, Exception):
            logger.error("Comment notification to %s failed on %s#%s: %s", login, repo_ctx.full_name, pr_number, result)

    return {
        "status": "comment_notified",
        "pr": pr_number,
        "recipients": [login for login, _ in sends],
    }
