"""Reviewer group index: login → group, and cross-group wait rules."""

from collections.abc import Iterable

from reviewflow.core.config import OrgConfig


class ReviewerGroupIndex:
    """Pure lookup tables derived from an organization's configuration."""

    def __init__(self, login_to_group: dict[str, str], wait_for_groups: dict[str, list[str]]):
        self._login_to_group = dict(login_to_group)
        self._wait_for_groups = {group: list(waits) for group, waits in wait_for_groups.items()}

    @classmethod
    def from_config(cls, config: OrgConfig) -> "ReviewerGroupIndex":
        login_to_group = {}
        for group, members in config.groups.items():
            for github_login in members:
                login_to_group[github_login] = group
        return cls(login_to_group, config.wait_for_groups)

    def group_of(self, github_login: str | None) -> str | None:
        if not github_login:
            return None
        return self._login_to_group.get(github_login)

    def groups_of(self, github_logins: Iterable[str]) -> list[str]:
        """Distinct groups of *github_logins*, in first-seen order; unknown logins are skipped."""
        groups: list[str] = []
        for github_login in github_logins:
            group = self.group_of(github_login)
            if group and group not in groups:
                groups.append(group)
        return groups

    def wait_for(self, group: str) -> list[str]:
        return list(self._wait_for_groups.get(group, []))

    def review_should_wait(
        self,
        reviewer_group: str | None,
        requested_reviewers: Iterable[str],
        *,
        includes_reviewer_group: bool = False,
        includes_wait_for_groups: bool = False,
        exclude_login: str | None = None,
    ) -> bool:
        """Return True when another pending request holds *reviewer_group* back.

        Args:
            reviewer_group: Group whose review is being evaluated.
            requested_reviewers: Logins of currently requested reviewers.
            includes_reviewer_group: Another pending request in the same group counts.
            includes_wait_for_groups: A pending request in a group listed in
                ``wait_for_groups[reviewer_group]`` counts.
            exclude_login: Reviewer the event is about; their own pending
                request is not "another" request.
        """
        if not reviewer_group:
            return False

        pending_groups = self.groups_of(
            github_login for github_login in requested_reviewers if github_login != exclude_login
        )

        if includes_reviewer_group and reviewer_group in pending_groups:
            return True

        if includes_wait_for_groups:
            waits = self._wait_for_groups.get(reviewer_group, [])
            return any(group in waits for group in pending_groups)

        return False

    def __len__(self) -> int:
        return len(self._login_to_group)
