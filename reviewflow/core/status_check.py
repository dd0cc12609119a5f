"""Status check derived from a pull request's review labels."""

import asyncio
import logging
from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Any

from reviewflow.adapters.git.github import GitHubClient
from reviewflow.core.config import ReviewLabels
from reviewflow.core.models import StatusResult, StatusState

logger = logging.getLogger(__name__)

CHANGES_REQUESTED_MESSAGE = "Changes requested ! Push commits or discuss changes then re-request a review."
READY_TO_MERGE_MESSAGE = "✓ PR ready to merge !"
NEW_COMMITS_MESSAGE = "New commits have been pushed"

# GitHub rejects commit status descriptions longer than this.
_MAX_DESCRIPTION = 140


def derive_status(
    label_keys: set[str],
    requested_reviewers: Iterable[str],
    review_labels: dict[str, ReviewLabels],
    *,
    requires_review_request: bool = False,
) -> StatusResult:
    """Evaluate the status rules in priority order; the first match wins."""
    requested = list(requested_reviewers)
    if requested:
        return StatusResult(StatusState.FAILURE, f"Awaiting review from: {', '.join(requested)}")

    if any(labels.changes_requested in label_keys for labels in review_labels.values()):
        return StatusResult(StatusState.FAILURE, CHANGES_REQUESTED_MESSAGE)

    needs_review_groups = [group for group, labels in review_labels.items() if labels.needs_review in label_keys]
    if needs_review_groups:
        return StatusResult(
            StatusState.FAILURE,
            f"Awaiting review from: {', '.join(needs_review_groups)}. Perhaps request someone ?",
        )

    has_approval = any(labels.approved in label_keys for labels in review_labels.values())
    if not has_approval and requires_review_request:
        return StatusResult(StatusState.FAILURE, "Awaiting review... Perhaps request someone ?")

    return StatusResult(StatusState.SUCCESS, READY_TO_MERGE_MESSAGE)


class StatusPublisher:
    """Publish a :class:`StatusResult` as a check-run or commit status.

    A check-run is used when this bot already owns one on the head commit;
    otherwise a plain commit status is written under the bot's name.
    """

    def __init__(self, github: GitHubClient, bot_name: str, *, dry_run: bool = False):
        self._github = github
        self._bot_name = bot_name
        self._dry_run = dry_run

    async def publish(
        self,
        repo: str,
        pr: dict[str, Any],
        result: StatusResult,
        previous_sha: str | None = None,
    ) -> None:
        head_sha = pr["head"]["sha"]
        check_runs = await self._github.list_check_runs(repo, head_sha)
        has_pr_check = any(check.get("name") == self._bot_name for check in check_runs)

        logger.debug(
            "add status check %s@%s: %s %s (check-run=%s)",
            repo,
            head_sha,
            result.state.value,
            result.description,
            has_pr_check,
        )
        if self._dry_run:
            logger.info("DRY_RUN: skipping status %s on %s@%s", result.state.value, repo, head_sha)
            return

        if has_pr_check:
            await self._github.create_check_run(
                repo,
                {
                    "name": self._bot_name,
                    "head_sha": head_sha,
                    "started_at": pr.get("created_at"),
                    "status": "completed",
                    "conclusion": result.state.value,
                    "completed_at": datetime.now(UTC).isoformat(),
                    "output": {"title": result.description, "summary": ""},
                },
            )
        elif previous_sha and result.state == StatusState.FAILURE:
            await asyncio.gather(
                self._create_status(repo, previous_sha, StatusState.SUCCESS, NEW_COMMITS_MESSAGE),
                self._create_status(repo, head_sha, result.state, result.description),
            )
        else:
            await self._create_status(repo, head_sha, result.state, result.description)

    async def _create_status(self, repo: str, sha: str, state: StatusState, description: str) -> None:
        await self._github.create_commit_status(
            repo,
            sha,
            state.value,
            description[:_MAX_DESCRIPTION],
            self._bot_name,
        )
