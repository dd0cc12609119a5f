"""Per-organization runtime context and its single-flight cache."""

import logging
from collections.abc import Callable
from dataclasses import dataclass

from reviewflow.adapters.notifications.slack import SlackClient
from reviewflow.core.config import OrgConfig
from reviewflow.core.review_labels import ReviewLabelStateMachine
from reviewflow.core.reviewer_groups import ReviewerGroupIndex
from reviewflow.core.single_flight import SingleFlightCache
from reviewflow.core.slack_directory import SlackDirectory

logger = logging.getLogger(__name__)

SlackClientFactory = Callable[[OrgConfig], SlackClient | None]


@dataclass(frozen=True)
class OrgContext:
    """Read-only state shared by every repository of an organization."""

    login: str
    config: OrgConfig
    reviewer_groups: ReviewerGroupIndex
    slack: SlackDirectory
    state_machine: ReviewLabelStateMachine


class OrgContextCache:
    """Builds at most one :class:`OrgContext` per organization login.

    Contexts are built lazily on the first webhook for the organization and
    kept for the process lifetime.
    """

    def __init__(
        self,
        configs: dict[str, OrgConfig],
        slack_client_factory: SlackClientFactory,
        *,
        dry_run: bool = False,
    ):
        self._configs = configs
        self._slack_client_factory = slack_client_factory
        self._dry_run = dry_run
        self._cache: SingleFlightCache[str, OrgContext] = SingleFlightCache("org-context")

    def is_supported(self, org_login: str) -> bool:
        return org_login in self._configs

    async def obtain(self, org_login: str) -> OrgContext | None:
        """Return the organization's context, or None for unsupported organizations."""
        config = self._configs.get(org_login)
        if config is None:
            logger.debug("Ignoring event for unsupported organization %s", org_login)
            return None
        return await self._cache.get_or_build(org_login, lambda: self._build(config))

    async def _build(self, config: OrgConfig) -> OrgContext:
        logger.info("Initializing context for organization %s", config.login)
        slack = await SlackDirectory.build(
            self._slack_client_factory(config),
            config.login_to_email(),
            dry_run=self._dry_run,
        )
        reviewer_groups = ReviewerGroupIndex.from_config(config)
        return OrgContext(
            login=config.login,
            config=config,
            reviewer_groups=reviewer_groups,
            slack=slack,
            state_machine=ReviewLabelStateMachine(reviewer_groups, config.review_labels),
        )

    def __len__(self) -> int:
        return len(self._cache)
