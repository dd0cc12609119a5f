"""YAML-based organization configuration with schema validation.

A configuration document maps organization logins to the reviewer groups,
labels and review policy Reviewflow applies to that organization::

    orgs:
      acme:
        slack_token_env: ACME_SLACK_TOKEN
        requires_review_request: true
        groups:
          dev: {alice: alice@acme.io}
          design: {carol: carol@acme.io}
        wait_for_groups:
          design: [dev]
        labels:
          list:
            dev/needs-review: {name: "dev: needs review", color: "#FFC44C"}
          review:
            dev:
              needs_review: dev/needs-review
              ...

Organizations absent from the document are not supported and are ignored.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

#: Roles a reviewer group assigns a logical label key to.
REVIEW_LABEL_ROLES = ("needs_review", "requested", "approved", "changes_requested")

_CAMEL_ALIASES = {
    "needsReview": "needs_review",
    "changesRequested": "changes_requested",
    "waitForGroups": "wait_for_groups",
    "requiresReviewRequest": "requires_review_request",
    "autoAssignToCreator": "auto_assign_to_creator",
    "statusChecks": "status_checks",
    "slackTokenEnv": "slack_token_env",
}

_COLOR_RE = re.compile(r"^#?[0-9a-fA-F]{6}$")


class ConfigError(ValueError):
    """Raised when a configuration document fails validation."""

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__("Invalid reviewflow configuration:\n- " + "\n- ".join(self.errors))


@dataclass(frozen=True)
class LabelConfig:
    """Configured name and color for one logical label key."""

    name: str
    color: str

    @property
    def api_color(self) -> str:
        """Color as GitHub stores it: six lower-case hex digits, no ``#``."""
        return self.color.lstrip("#").lower()


@dataclass(frozen=True)
class ReviewLabels:
    """Logical label keys a reviewer group moves through."""

    needs_review: str
    requested: str
    approved: str
    changes_requested: str

    def keys(self) -> tuple[str, ...]:
        return (self.needs_review, self.requested, self.approved, self.changes_requested)


@dataclass
class OrgConfig:
    """Static configuration of one organization."""

    login: str
    groups: dict[str, dict[str, str]] = field(default_factory=dict)
    wait_for_groups: dict[str, list[str]] = field(default_factory=dict)
    labels: dict[str, LabelConfig] = field(default_factory=dict)
    review_labels: dict[str, ReviewLabels] = field(default_factory=dict)
    requires_review_request: bool = False
    auto_assign_to_creator: bool = False
    status_checks: bool = True
    slack_token_env: str | None = None

    def login_to_email(self) -> dict[str, str]:
        """Merge every group's membership into a single login → email table."""
        merged: dict[str, str] = {}
        for members in self.groups.values():
            merged.update(members)
        return merged


def _alias_keys(mapping: dict[str, Any]) -> dict[str, Any]:
    return {_CAMEL_ALIASES.get(key, key): item for key, item in mapping.items()}


def _normalize_keys(data: Any) -> Any:
    """Accept camelCase spellings of settings and review roles.

    Only the organization settings and the role keys under
    ``labels.review.<group>`` are renamed; group members and label keys are
    user data and are kept as written.
    """
    if not isinstance(data, dict) or not isinstance(data.get("orgs"), dict):
        return data

    orgs = {}
    for login, org_data in data["orgs"].items():
        if isinstance(org_data, dict):
            org_data = _alias_keys(org_data)
            labels = org_data.get("labels")
            if isinstance(labels, dict) and isinstance(labels.get("review"), dict):
                review = {
                    group: _alias_keys(roles) if isinstance(roles, dict) else roles
                    for group, roles in labels["review"].items()
                }
                org_data["labels"] = {**labels, "review": review}
        orgs[login] = org_data
    return {**data, "orgs": orgs}


class OrgConfigLoader:
    """Load and validate organization configuration documents.

    Example usage::

        configs = OrgConfigLoader.load("reviewflow.yml")
        acme = configs["acme"]

        errors = OrgConfigLoader.validate_file("reviewflow.yml")
        if errors:
            raise ConfigError(errors)
    """

    @staticmethod
    def load(yaml_path: str | Path) -> dict[str, OrgConfig]:
        """Load, validate and build every organization in *yaml_path*."""
        data = OrgConfigLoader._read(yaml_path)
        return OrgConfigLoader.load_from_dict(data)

    @staticmethod
    def load_from_dict(data: dict[str, Any]) -> dict[str, OrgConfig]:
        data = _normalize_keys(data or {})
        errors = OrgConfigLoader.validate(data)
        if errors:
            raise ConfigError(errors)

        configs = {}
        for login, org_data in (data.get("orgs") or {}).items():
            configs[login] = OrgConfigLoader._build_org(login, org_data)
        logger.info("Loaded configuration for %d organization(s): %s", len(configs), ", ".join(configs))
        return configs

    @staticmethod
    def validate_file(yaml_path: str | Path) -> list[str]:
        try:
            data = OrgConfigLoader._read(yaml_path)
        except (OSError, yaml.YAMLError) as exc:
            return [f"Could not read {yaml_path}: {exc}"]
        return OrgConfigLoader.validate(_normalize_keys(data or {}))

    @staticmethod
    def validate(data: dict[str, Any]) -> list[str]:
        """Return a list of human-readable schema errors (empty when valid)."""
        if not isinstance(data, dict):
            return ["Configuration root must be a mapping"]
        orgs = data.get("orgs")
        if not isinstance(orgs, dict) or not orgs:
            return ["'orgs' must be a non-empty mapping of organization login to settings"]

        errors: list[str] = []
        for login, org_data in orgs.items():
            errors.extend(OrgConfigLoader._validate_org(str(login), org_data))
        return errors

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _read(yaml_path: str | Path) -> dict[str, Any]:
        with open(yaml_path, "r", encoding="utf-8") as fh:
            return yaml.safe_load(fh) or {}

    @staticmethod
    def _validate_org(login: str, org_data: Any) -> list[str]:
        prefix = f"orgs.{login}"
        if not isinstance(org_data, dict):
            return [f"{prefix} must be a mapping"]

        errors: list[str] = []
        groups = org_data.get("groups") or {}
        if not isinstance(groups, dict):
            return [f"{prefix}.groups must be a mapping of group name to members"]

        seen_logins: dict[str, str] = {}
        for group, members in groups.items():
            if not isinstance(members, dict):
                errors.append(f"{prefix}.groups.{group} must map github logins to emails")
                continue
            for github_login in members:
                if github_login in seen_logins:
                    errors.append(
                        f"{prefix}.groups: '{github_login}' is in both "
                        f"'{seen_logins[github_login]}' and '{group}'"
                    )
                seen_logins[github_login] = group

        wait_for_groups = org_data.get("wait_for_groups") or {}
        if not isinstance(wait_for_groups, dict):
            errors.append(f"{prefix}.wait_for_groups must be a mapping")
            wait_for_groups = {}
        for group, waits in wait_for_groups.items():
            if group not in groups:
                errors.append(f"{prefix}.wait_for_groups: unknown group '{group}'")
            if not isinstance(waits, list):
                errors.append(f"{prefix}.wait_for_groups.{group} must be a list")
                continue
            for waited in waits:
                if waited not in groups:
                    errors.append(f"{prefix}.wait_for_groups.{group}: unknown group '{waited}'")

        labels = org_data.get("labels") or {}
        if not isinstance(labels, dict):
            errors.append(f"{prefix}.labels must contain 'list' and 'review' mappings")
            return errors
        label_list = labels.get("list") or {}
        review = labels.get("review") or {}
        if not isinstance(label_list, dict) or not isinstance(review, dict):
            errors.append(f"{prefix}.labels must contain 'list' and 'review' mappings")
            return errors

        for key, label in label_list.items():
            if not isinstance(label, dict) or not label.get("name"):
                errors.append(f"{prefix}.labels.list.{key} needs a 'name'")
                continue
            if not _COLOR_RE.match(str(label.get("color", ""))):
                errors.append(f"{prefix}.labels.list.{key}: color must be '#RRGGBB'")

        for group, roles in review.items():
            if group not in groups:
                errors.append(f"{prefix}.labels.review: unknown group '{group}'")
            if not isinstance(roles, dict):
                errors.append(f"{prefix}.labels.review.{group} must be a mapping")
                continue
            keys = []
            for role in REVIEW_LABEL_ROLES:
                key = roles.get(role)
                if not key:
                    errors.append(f"{prefix}.labels.review.{group}.{role} is required")
                    continue
                if key not in label_list:
                    errors.append(f"{prefix}.labels.review.{group}.{role}: unknown label '{key}'")
                keys.append(key)
            if len(set(keys)) != len(keys):
                errors.append(f"{prefix}.labels.review.{group}: label keys must be distinct")

        return errors

    @staticmethod
    def _build_org(login: str, org_data: dict[str, Any]) -> OrgConfig:
        labels = org_data.get("labels") or {}
        return OrgConfig(
            login=login,
            groups={group: dict(members) for group, members in (org_data.get("groups") or {}).items()},
            wait_for_groups={
                group: list(waits) for group, waits in (org_data.get("wait_for_groups") or {}).items()
            },
            labels={
                key: LabelConfig(name=str(label["name"]), color="#" + str(label["color"]).lstrip("#"))
                for key, label in (labels.get("list") or {}).items()
            },
            review_labels={
                group: ReviewLabels(**{role: roles[role] for role in REVIEW_LABEL_ROLES})
                for group, roles in (labels.get("review") or {}).items()
            },
            requires_review_request=bool(org_data.get("requires_review_request", False)),
            auto_assign_to_creator=bool(org_data.get("auto_assign_to_creator", False)),
            status_checks=bool(org_data.get("status_checks", True)),
            slack_token_env=org_data.get("slack_token_env"),
        )
