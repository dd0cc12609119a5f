"""Pytest configuration and shared fixtures.

Every test works against the ``acme`` organization below: a ``dev`` group and a
``design`` group that waits for ``dev``. ``dan`` is configured but has no
Slack account.
"""

import copy
from unittest.mock import MagicMock

import pytest

from reviewflow.adapters.git.github import GitHubClient
from reviewflow.adapters.notifications.slack import SlackClient
from reviewflow.core.config import OrgConfigLoader
from reviewflow.core.label_sync import marker_description
from reviewflow.core.models import Label, SlackMember
from reviewflow.core.org_context import OrgContext
from reviewflow.core.repo_context import RepoContext
from reviewflow.core.review_labels import ReviewLabelStateMachine
from reviewflow.core.reviewer_groups import ReviewerGroupIndex
from reviewflow.core.slack_directory import SlackDirectory
from reviewflow.core.status_check import StatusPublisher
from reviewflow.runtime import ReviewflowRuntime
from reviewflow.settings import Settings
from reviewflow.webhooks.policy import GithubWebhookPolicy

ORG_CONFIG = {
    "orgs": {
        "acme": {
            "slack_token_env": "ACME_SLACK_TOKEN",
            "groups": {
                "dev": {"alice": "alice@acme.io", "bob": "bob@acme.io", "dan": "dan@acme.io"},
                "design": {"carol": "carol@acme.io", "erin": "erin@acme.io"},
            },
            "wait_for_groups": {"design": ["dev"]},
            "labels": {
                "list": {
                    "dev/needs-review": {"name": "dev: needs review", "color": "#FFC44C"},
                    "dev/requested": {"name": "dev: review requested", "color": "#DAE1E6"},
                    "dev/approved": {"name": "dev: approved", "color": "#64DD17"},
                    "dev/changes-requested": {"name": "dev: changes requested", "color": "#E91E63"},
                    "design/needs-review": {"name": "design: needs review", "color": "#FFC44C"},
                    "design/requested": {"name": "design: review requested", "color": "#DAE1E6"},
                    "design/approved": {"name": "design: approved", "color": "#64DD17"},
                    "design/changes-requested": {"name": "design: changes requested", "color": "#E91E63"},
                },
                "review": {
                    "dev": {
                        "needs_review": "dev/needs-review",
                        "requested": "dev/requested",
                        "approved": "dev/approved",
                        "changes_requested": "dev/changes-requested",
                    },
                    "design": {
                        "needs_review": "design/needs-review",
                        "requested": "design/requested",
                        "approved": "design/approved",
                        "changes_requested": "design/changes-requested",
                    },
                },
            },
        }
    }
}

SLACK_MEMBERS = {
    "alice@acme.io": SlackMember(email="alice@acme.io", user_id="UALICE", im_channel_id="DALICE"),
    "bob@acme.io": SlackMember(email="bob@acme.io", user_id="UBOB", im_channel_id="DBOB"),
    "carol@acme.io": SlackMember(email="carol@acme.io", user_id="UCAROL", im_channel_id="DCAROL"),
    "erin@acme.io": SlackMember(email="erin@acme.io", user_id="UERIN", im_channel_id="DERIN"),
}


@pytest.fixture
def config_data():
    return copy.deepcopy(ORG_CONFIG)


@pytest.fixture
def org_config(config_data):
    return OrgConfigLoader.load_from_dict(config_data)["acme"]


@pytest.fixture
def reviewer_groups(org_config):
    return ReviewerGroupIndex.from_config(org_config)


@pytest.fixture
def state_machine(reviewer_groups, org_config):
    return ReviewLabelStateMachine(reviewer_groups, org_config.review_labels)


@pytest.fixture
def repo_labels(org_config):
    """Labels as they exist once the repository has been synchronized."""
    return {
        key: Label(id=100 + index, name=label.name, color=label.api_color, description=marker_description(key))
        for index, (key, label) in enumerate(org_config.labels.items())
    }


@pytest.fixture
def github():
    client = MagicMock(spec=GitHubClient)
    client.list_labels.return_value = []
    client.list_reviews.return_value = []
    client.list_review_comments.return_value = []
    client.list_check_runs.return_value = []
    client.replace_labels.return_value = []
    client.create_commit_status.return_value = {}
    client.create_check_run.return_value = {}
    client.request_reviewers.return_value = {}
    client.add_assignees.return_value = {}
    return client


@pytest.fixture
def slack_client():
    client = MagicMock(spec=SlackClient)
    client.post_message.return_value = "1700000000.000100"
    return client


@pytest.fixture
def slack_directory(org_config, slack_client):
    return SlackDirectory(slack_client, org_config.login_to_email(), SLACK_MEMBERS)


@pytest.fixture
def org_ctx(org_config, reviewer_groups, slack_directory, state_machine):
    return OrgContext(
        login="acme",
        config=org_config,
        reviewer_groups=reviewer_groups,
        slack=slack_directory,
        state_machine=state_machine,
    )


@pytest.fixture
def repo_ctx(org_ctx, repo_labels, github):
    return RepoContext(org_ctx, 42, "acme/web", repo_labels, github)


@pytest.fixture
def runtime(github):
    settings = Settings(github_token="ghp_test", bot_name="reviewflow")
    return ReviewflowRuntime(
        settings=settings,
        github=github,
        org_contexts=MagicMock(),
        repo_contexts=MagicMock(),
        status_publisher=StatusPublisher(github, settings.bot_name),
        policy=GithubWebhookPolicy(bot_name=settings.bot_name),
    )


@pytest.fixture
def make_pr(repo_labels):
    """Factory for ``pull_request`` payload objects."""

    def _make_pr(number=7, author="alice", requested=(), label_keys=(), assignees=()):
        return {
            "number": number,
            "html_url": f"https://github.com/acme/web/pull/{number}",
            "user": {"login": author, "type": "User"},
            "requested_reviewers": [{"login": login, "type": "User"} for login in requested],
            "labels": [{"id": repo_labels[key].id, "name": repo_labels[key].name} for key in label_keys],
            "assignees": [{"login": login} for login in assignees],
            "head": {"sha": "headsha"},
            "created_at": "2026-01-05T10:00:00Z",
        }

    return _make_pr


@pytest.fixture
def review_payload():
    """Factory for reviews as listed by the GitHub reviews endpoint."""

    def _review(login, state, user_id=None):
        return {"user": {"login": login, "id": user_id}, "state": state}

    return _review
