"""Label synchronizer: converge repository labels toward the configured set.

Each logical label key resolves to exactly one repository label, matched by
(1) exact name, (2) the marker description Reviewflow writes on labels it
manages, (3) a legacy name kept for repositories that predate the current
naming, and otherwise created. A matched label whose name or color drifted
from configuration is updated in place. Descriptions are not compared.
"""

import logging

from reviewflow.adapters.git.github import GitHubClient
from reviewflow.core.config import LabelConfig
from reviewflow.core.models import Label

logger = logging.getLogger(__name__)

#: Historical label names still present on older repositories.
LEGACY_LABEL_NAMES = {
    "design/needs-review": "needs-design-review",
    "design/approved": "design-reviewed",
}


def marker_description(label_key: str) -> str:
    return f"Generated by review-flow for {label_key}"


def _find_existing(existing: list[Label], label_key: str, config: LabelConfig) -> Label | None:
    for label in existing:
        if label.name == config.name:
            return label

    description = marker_description(label_key)
    for label in existing:
        if label.description == description:
            return label

    legacy_name = LEGACY_LABEL_NAMES.get(label_key)
    if legacy_name:
        for label in existing:
            if label.name == legacy_name:
                return label

    return None


class LabelSynchronizer:
    """Resolve or create the repository label behind every logical label key."""

    def __init__(self, github: GitHubClient, *, dry_run: bool = False):
        self._github = github
        self._dry_run = dry_run

    async def sync(self, repo: str, labels: dict[str, LabelConfig]) -> dict[str, Label]:
        existing = [Label.from_api(data) for data in await self._github.list_labels(repo)]
        resolved: dict[str, Label] = {}

        for label_key, config in labels.items():
            color = config.api_color
            description = marker_description(label_key)
            current = _find_existing(existing, label_key, config)

            if current is None:
                resolved[label_key] = await self._create(repo, config.name, color, description)
            elif current.name != config.name or current.color != color:
                logger.info(
                    "Needs to update label %s in %s: name %r → %r, color %s → %s",
                    label_key,
                    repo,
                    current.name,
                    config.name,
                    current.color,
                    color,
                )
                resolved[label_key] = await self._update(repo, current, config.name, color, description)
            else:
                resolved[label_key] = current

        return resolved

    async def _create(self, repo: str, name: str, color: str, description: str) -> Label:
        logger.info("Creating label %r in %s", name, repo)
        if self._dry_run:
            return Label(id=None, name=name, color=color, description=description)
        data = await self._github.create_label(repo, name, color, description)
        return Label.from_api(data)

    async def _update(self, repo: str, current: Label, name: str, color: str, description: str) -> Label:
        if self._dry_run:
            return Label(id=current.id, name=name, color=color, description=description)
        data = await self._github.update_label(repo, current.name, name, color, description)
        return Label.from_api(data)
