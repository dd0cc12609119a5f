"""Per-repository runtime context and its single-flight cache."""

import logging
from collections.abc import Iterable
from typing import Any

from reviewflow.adapters.git.github import GitHubClient
from reviewflow.adapters.notifications.slack import SlackMessage
from reviewflow.core.config import OrgConfig, ReviewLabels
from reviewflow.core.label_sync import LabelSynchronizer
from reviewflow.core.models import Label, LabelDelta, ReviewSnapshot
from reviewflow.core.org_context import OrgContext, OrgContextCache
from reviewflow.core.review_labels import ReviewLabelStateMachine, build_review_snapshot
from reviewflow.core.reviewer_groups import ReviewerGroupIndex
from reviewflow.core.single_flight import SingleFlightCache
from reviewflow.core.slack_directory import SlackDirectory

logger = logging.getLogger(__name__)


class RepoContext:
    """Read-only repository state composed over the owning :class:`OrgContext`."""

    def __init__(
        self,
        org: OrgContext,
        repo_id: int,
        full_name: str,
        labels: dict[str, Label],
        github: GitHubClient,
        *,
        dry_run: bool = False,
    ):
        self.org = org
        self.repo_id = repo_id
        self.full_name = full_name
        self.labels = dict(labels)
        self._github = github
        self._dry_run = dry_run
        self._key_by_id = {label.id: key for key, label in self.labels.items() if label.id is not None}
        self._key_by_name = {label.name: key for key, label in self.labels.items()}

    # Forwarded organization state

    @property
    def config(self) -> OrgConfig:
        return self.org.config

    @property
    def reviewer_groups(self) -> ReviewerGroupIndex:
        return self.org.reviewer_groups

    @property
    def slack(self) -> SlackDirectory:
        return self.org.slack

    @property
    def state_machine(self) -> ReviewLabelStateMachine:
        return self.org.state_machine

    @property
    def github(self) -> GitHubClient:
        return self._github

    @property
    def dry_run(self) -> bool:
        return self._dry_run

    def review_labels(self, group: str | None) -> ReviewLabels | None:
        if not group:
            return None
        return self.config.review_labels.get(group)

    async def post_message(self, github_login: str, message: SlackMessage) -> str | None:
        return await self.slack.post_message(github_login, message)

    # ------------------------------------------------------------------
    # Label keys
    # ------------------------------------------------------------------

    def label_keys(self, pr_labels: Iterable[dict[str, Any]]) -> set[str]:
        """Logical keys of the managed labels among *pr_labels*."""
        keys = set()
        for pr_label in pr_labels:
            key = self._key_by_id.get(pr_label.get("id")) or self._key_by_name.get(pr_label.get("name"))
            if key:
                keys.add(key)
        return keys

    def has_changes_requested_review(self, keys: set[str]) -> bool:
        return any(labels.changes_requested in keys for labels in self.config.review_labels.values())

    def has_approves_review(self, keys: set[str]) -> bool:
        return any(labels.approved in keys for labels in self.config.review_labels.values())

    def needs_review_group_names(self, keys: set[str]) -> list[str]:
        return [group for group, labels in self.config.review_labels.items() if labels.needs_review in keys]

    # ------------------------------------------------------------------
    # Pull request operations
    # ------------------------------------------------------------------

    async def review_snapshot(self, pr: dict[str, Any]) -> ReviewSnapshot:
        reviews = await self._github.list_reviews(self.full_name, pr["number"])
        return build_review_snapshot(reviews, self.reviewer_groups, pr_author=(pr.get("user") or {}).get("login"))

    async def update_labels(self, pr: dict[str, Any], delta: LabelDelta) -> set[str]:
        """Apply *delta* to the PR's labels and return the resulting logical keys.

        GitHub replaces the whole label set, so the desired set of names is
        computed locally from the PR's current labels before writing.
        """
        pr_labels = pr.get("labels") or []
        new_names = [pr_label["name"] for pr_label in pr_labels]
        modified = False

        for key in sorted(delta.add):
            label = self.labels.get(key)
            if label is None:
                logger.warning("Unknown label key %s in %s", key, self.full_name)
                continue
            if label.name not in new_names:
                new_names.append(label.name)
                modified = True

        for key in sorted(delta.remove):
            label = self.labels.get(key)
            if label is not None and label.name in new_names:
                new_names.remove(label.name)
                modified = True

        logger.info(
            "updateLabels %s#%s modified=%s old=%s new=%s",
            self.full_name,
            pr["number"],
            modified,
            [pr_label["name"] for pr_label in pr_labels],
            new_names,
        )

        if modified and not self._dry_run:
            await self._github.replace_labels(self.full_name, pr["number"], new_names)

        return {self._key_by_name[name] for name in new_names if name in self._key_by_name}


class RepoContextCache:
    """Builds at most one :class:`RepoContext` per repository id."""

    def __init__(self, org_contexts: OrgContextCache, github: GitHubClient, *, dry_run: bool = False):
        self._org_contexts = org_contexts
        self._github = github
        self._dry_run = dry_run
        self._label_sync = LabelSynchronizer(github, dry_run=dry_run)
        self._cache: SingleFlightCache[int, RepoContext] = SingleFlightCache("repo-context")

    @property
    def org_contexts(self) -> OrgContextCache:
        return self._org_contexts

    async def obtain(self, org_login: str, repo_id: int, full_name: str) -> RepoContext | None:
        """Return the repository's context, or None when its organization is unsupported."""
        if not self._org_contexts.is_supported(org_login):
            logger.debug("Ignoring event for %s: organization %s is not configured", full_name, org_login)
            return None
        return await self._cache.get_or_build(repo_id, lambda: self._build(org_login, repo_id, full_name))

    async def _build(self, org_login: str, repo_id: int, full_name: str) -> RepoContext:
        org = await self._org_contexts.obtain(org_login)
        if org is None:
            raise LookupError(f"No context for organization {org_login}")

        logger.info("Initializing context for repository %s", full_name)
        labels = await self._label_sync.sync(full_name, org.config.labels)
        return RepoContext(org, repo_id, full_name, labels, self._github, dry_run=self._dry_run)

    def __len__(self) -> int:
        return len(self._cache)
