"""Pull request and review webhook handlers.

Each handler receives the runtime, the repository context and the raw
payload. Label/status updates and Slack notifications are independent side
effects of the same event: each runs as its own guarded step so a failure in
one never prevents the other.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

from reviewflow.adapters.notifications.slack import SlackMessage
from reviewflow.core.models import LabelDelta, ReviewSnapshot, ReviewState
from reviewflow.core.repo_context import RepoContext
from reviewflow.core.status_check import derive_status
from reviewflow.core.utils.slackify import create_link, quote, slackify_comment_body

if TYPE_CHECKING:
    from reviewflow.runtime import ReviewflowRuntime

logger = logging.getLogger(__name__)

_REVIEW_SUBMITTED_MESSAGES = {
    ReviewState.CHANGES_REQUESTED: ":x: requested changes on",
    ReviewState.APPROVED: ":white_check_mark: approved",
}


def pr_link(pr: dict[str, Any], repo_ctx: RepoContext) -> str:
    return create_link(pr["html_url"], f"{repo_ctx.full_name}#{pr['number']}")


async def run_step(step: str, repo_ctx: RepoContext, pr: dict[str, Any], action: Awaitable[Any]) -> bool:
    """Await *action*, logging instead of propagating its failure."""
    try:
        await action
        return True
    except Exception:
        logger.exception("%s failed for %s#%s", step, repo_ctx.full_name, pr.get("number"))
        return False


async def update_status(
    runtime: ReviewflowRuntime,
    repo_ctx: RepoContext,
    pr: dict[str, Any],
    label_keys: set[str] | None = None,
    previous_sha: str | None = None,
) -> None:
    """Recompute and publish the status check for *pr*."""
    if not repo_ctx.config.status_checks:
        return
    if label_keys is None:
        label_keys = repo_ctx.label_keys(pr.get("labels") or [])
    result = derive_status(
        label_keys,
        runtime.policy.requested_reviewer_logins(pr),
        repo_ctx.config.review_labels,
        requires_review_request=repo_ctx.config.requires_review_request,
    )
    await runtime.status_publisher.publish(repo_ctx.full_name, pr, result, previous_sha=previous_sha)


async def apply_labels(
    runtime: ReviewflowRuntime,
    repo_ctx: RepoContext,
    pr: dict[str, Any],
    delta: LabelDelta,
) -> None:
    label_keys = await repo_ctx.update_labels(pr, delta)
    await update_status(runtime, repo_ctx, pr, label_keys)


async def _review_labels_step(
    runtime: ReviewflowRuntime,
    repo_ctx: RepoContext,
    pr: dict[str, Any],
    reviewer: str,
    compute: Callable[[ReviewSnapshot], LabelDelta],
) -> None:
    """Fetch a fresh snapshot (only for groups with review labels) and apply *compute*'s delta."""
    if repo_ctx.review_labels(repo_ctx.reviewer_groups.group_of(reviewer)) is None:
        await update_status(runtime, repo_ctx, pr)
        return
    snapshot = await repo_ctx.review_snapshot(pr)
    delta = compute(snapshot)
    logger.info(
        "Label delta for %s#%s (%s): add=%s remove=%s",
        repo_ctx.full_name,
        pr["number"],
        reviewer,
        sorted(delta.add),
        sorted(delta.remove),
    )
    await apply_labels(runtime, repo_ctx, pr, delta)


# ----------------------------------------------------------------------
# pull_request.*
# ----------------------------------------------------------------------


async def handle_pull_request_opened(
    runtime: ReviewflowRuntime, repo_ctx: RepoContext, payload: dict[str, Any]
) -> dict[str, Any]:
    pr = payload["pull_request"]
    assigned = False

    if repo_ctx.config.auto_assign_to_creator and not pr.get("assignees"):
        creator = pr["user"]["login"]
        logger.info("Assigning %s#%s to its creator %s", repo_ctx.full_name, pr["number"], creator)
        if not runtime.dry_run:
            assigned = await run_step(
                "auto-assign",
                repo_ctx,
                pr,
                runtime.github.add_assignees(repo_ctx.full_name, pr["number"], [creator]),
            )

    await run_step("status", repo_ctx, pr, update_status(runtime, repo_ctx, pr))
    return {"status": "pr_opened", "pr": pr["number"], "assigned": assigned}


async def handle_pull_request_synchronize(
    runtime: ReviewflowRuntime, repo_ctx: RepoContext, payload: dict[str, Any]
) -> dict[str, Any]:
    pr = payload["pull_request"]
    await run_step(
        "status",
        repo_ctx,
        pr,
        update_status(runtime, repo_ctx, pr, previous_sha=payload.get("before")),
    )
    return {"status": "pr_synchronized", "pr": pr["number"]}


async def handle_review_requested(
    runtime: ReviewflowRuntime, repo_ctx: RepoContext, payload: dict[str, Any]
) -> dict[str, Any]:
    pr = payload["pull_request"]
    sender = payload.get("sender") or {}
    reviewer = (payload.get("requested_reviewer") or {}).get("login")

    # Requests made by a bot come from the dismissed-review re-request.
    if runtime.policy.is_bot(sender):
        return {"status": "ignored_bot_sender", "pr": pr["number"]}
    if not reviewer:
        return {"status": "ignored_team_request", "pr": pr["number"]}

    requested = runtime.policy.requested_reviewer_logins(pr)
    machine = repo_ctx.state_machine
    should_wait = machine.request_should_wait(reviewer, requested)

    await run_step(
        "labels",
        repo_ctx,
        pr,
        _review_labels_step(
            runtime,
            repo_ctx,
            pr,
            reviewer,
            lambda snapshot: machine.review_requested(reviewer, requested, snapshot),
        ),
    )

    notified = False
    if sender.get("login") != reviewer and not should_wait:
        text = f"{repo_ctx.slack.mention(sender.get('login', ''))} requested your review on {pr_link(pr, repo_ctx)}"
        notified = await run_step("notification", repo_ctx, pr, repo_ctx.post_message(reviewer, SlackMessage(text)))

    return {"status": "review_requested", "pr": pr["number"], "waiting": should_wait, "notified": notified}


async def handle_review_request_removed(
    runtime: ReviewflowRuntime, repo_ctx: RepoContext, payload: dict[str, Any]
) -> dict[str, Any]:
    pr = payload["pull_request"]
    sender = payload.get("sender") or {}
    reviewer = (payload.get("requested_reviewer") or {}).get("login")
    if not reviewer:
        return {"status": "ignored_team_request", "pr": pr["number"]}

    requested = runtime.policy.requested_reviewer_logins(pr)
    machine = repo_ctx.state_machine

    await run_step(
        "labels",
        repo_ctx,
        pr,
        _review_labels_step(
            runtime,
            repo_ctx,
            pr,
            reviewer,
            lambda snapshot: machine.review_request_removed(reviewer, requested, snapshot),
        ),
    )

    notified = False
    if sender.get("login") != reviewer:
        text = (
            f"{repo_ctx.slack.mention(sender.get('login', ''))} removed the request for your review on "
            f"{pr_link(pr, repo_ctx)}"
        )
        notified = await run_step("notification", repo_ctx, pr, repo_ctx.post_message(reviewer, SlackMessage(text)))

    return {"status": "review_request_removed", "pr": pr["number"], "notified": notified}


async def handle_review_submitted(
    runtime: ReviewflowRuntime, repo_ctx: RepoContext, payload: dict[str, Any]
) -> dict[str, Any]:
    pr = payload["pull_request"]
    review = payload["review"]
    reviewer = review["user"]["login"]
    author = pr["user"]["login"]

    if reviewer == author:
        return {"status": "ignored_self_review", "pr": pr["number"]}

    state = ReviewState.parse(review.get("state"))
    requested = runtime.policy.requested_reviewer_logins(pr)
    machine = repo_ctx.state_machine

    if state in (ReviewState.APPROVED, ReviewState.CHANGES_REQUESTED):
        await run_step(
            "labels",
            repo_ctx,
            pr,
            _review_labels_step(
                runtime,
                repo_ctx,
                pr,
                reviewer,
                lambda snapshot: machine.review_submitted(reviewer, state, requested, snapshot),
            ),
        )

    verb = _REVIEW_SUBMITTED_MESSAGES.get(state, "commented on")
    body = slackify_comment_body(review.get("body") or "")
    message = SlackMessage(
        text=f"{repo_ctx.slack.mention(reviewer)} {verb} {pr_link(pr, repo_ctx)}",
        secondary_text=quote(body) if body else None,
    )
    notified = await run_step("notification", repo_ctx, pr, repo_ctx.post_message(author, message))
    return {"status": "review_submitted", "pr": pr["number"], "state": state.value, "notified": notified}


async def handle_review_dismissed(
    runtime: ReviewflowRuntime, repo_ctx: RepoContext, payload: dict[str, Any]
) -> dict[str, Any]:
    pr = payload["pull_request"]
    sender = payload.get("sender") or {}
    reviewer = payload["review"]["user"]["login"]
    machine = repo_ctx.state_machine

    await run_step(
        "labels",
        repo_ctx,
        pr,
        _review_labels_step(
            runtime,
            repo_ctx,
            pr,
            reviewer,
            lambda snapshot: machine.review_dismissed(reviewer, snapshot),
        ),
    )

    rerequested = False
    logger.info("Re-requesting review of %s on %s#%s", reviewer, repo_ctx.full_name, pr["number"])
    if not runtime.dry_run:
        rerequested = await run_step(
            "re-request",
            repo_ctx,
            pr,
            runtime.github.request_reviewers(repo_ctx.full_name, pr["number"], [reviewer]),
        )

    notified = False
    if sender.get("login") != reviewer:
        text = f"Your review was dismissed on {pr_link(pr, repo_ctx)}"
        notified = await run_step("notification", repo_ctx, pr, repo_ctx.post_message(reviewer, SlackMessage(text)))

    return {
        "status": "review_dismissed",
        "pr": pr["number"],
        "rerequested": rerequested,
        "notified": notified,
    }
