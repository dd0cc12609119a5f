"""Explicit wiring of clients and context caches shared by webhook handlers."""

import logging
import os
from dataclasses import dataclass

from reviewflow.adapters.git.github import GitHubClient
from reviewflow.adapters.notifications.slack import SlackClient
from reviewflow.core.config import OrgConfig
from reviewflow.core.org_context import OrgContextCache, SlackClientFactory
from reviewflow.core.repo_context import RepoContextCache
from reviewflow.core.status_check import StatusPublisher
from reviewflow.settings import Settings
from reviewflow.webhooks.policy import GithubWebhookPolicy

logger = logging.getLogger(__name__)


def slack_token_for(config: OrgConfig) -> str | None:
    if not config.slack_token_env:
        return None
    return os.getenv(config.slack_token_env) or None


def env_slack_client_factory(config: OrgConfig) -> SlackClient | None:
    """Create a Slack client from the token named by ``slack_token_env``."""
    token = slack_token_for(config)
    if not token:
        logger.warning("No Slack token for organization %s (env %s)", config.login, config.slack_token_env)
        return None
    return SlackClient(token)


@dataclass
class ReviewflowRuntime:
    """Everything a webhook handler needs, passed explicitly to handlers.

    The context caches are the only state shared across deliveries.
    """

    settings: Settings
    github: GitHubClient
    org_contexts: OrgContextCache
    repo_contexts: RepoContextCache
    status_publisher: StatusPublisher
    policy: GithubWebhookPolicy

    @property
    def dry_run(self) -> bool:
        return self.settings.dry_run

    @classmethod
    def build(
        cls,
        settings: Settings,
        configs: dict[str, OrgConfig],
        *,
        github: GitHubClient | None = None,
        slack_client_factory: SlackClientFactory = env_slack_client_factory,
    ) -> "ReviewflowRuntime":
        github = github or GitHubClient(settings.github_token)
        org_contexts = OrgContextCache(configs, slack_client_factory, dry_run=settings.dry_run)
        if settings.dry_run:
            logger.warning("DRY_RUN enabled: no Slack messages or GitHub writes will be sent")
        return cls(
            settings=settings,
            github=github,
            org_contexts=org_contexts,
            repo_contexts=RepoContextCache(org_contexts, github, dry_run=settings.dry_run),
            status_publisher=StatusPublisher(github, settings.bot_name, dry_run=settings.dry_run),
            policy=GithubWebhookPolicy(bot_name=settings.bot_name),
        )
