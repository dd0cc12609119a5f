"""GitHub webhook policy.

Normalizes GitHub webhook payloads and provides small policy helpers for
webhook-side decisions (signature checks, routing keys, bot detection).
"""

import hashlib
import hmac
from dataclasses import dataclass
from typing import Any, Optional


@dataclass(frozen=True)
class RepositoryRef:
    """Repository a delivery belongs to."""

    org_login: str
    repo_id: int
    full_name: str


def infer_event_type(payload: dict[str, Any]) -> str | None:
    """Best-effort event type inference when the GitHub event header is missing."""
    if not isinstance(payload, dict) or not payload:
        return None

    if "comment" in payload and "issue" in payload:
        return "issue_comment"
    if "comment" in payload and "pull_request" in payload:
        return "pull_request_review_comment"
    if "pull_request" in payload and "review" in payload:
        return "pull_request_review"
    if "pull_request" in payload:
        return "pull_request"
    if "zen" in payload or "hook_id" in payload:
        return "ping"
    return None


class GithubWebhookPolicy:
    """Policy helper for GitHub webhook event normalization."""

    def __init__(self, bot_name: str = "reviewflow"):
        self.bot_name = bot_name

    def event_name(self, event_type: str, payload: dict[str, Any]) -> str:
        """Return the ``<event>.<action>`` routing key of a delivery."""
        action = (payload or {}).get("action")
        return f"{event_type}.{action}" if action else event_type

    def repository_ref(self, payload: dict[str, Any]) -> RepositoryRef | None:
        repository = payload.get("repository") or {}
        owner = repository.get("owner") or {}
        if not owner.get("login") or repository.get("id") is None:
            return None
        return RepositoryRef(
            org_login=owner["login"],
            repo_id=int(repository["id"]),
            full_name=repository.get("full_name") or f"{owner['login']}/{repository.get('name', '')}",
        )

    def pull_request_number(self, payload: dict[str, Any]) -> int | None:
        pr = payload.get("pull_request") or {}
        if pr.get("number") is not None:
            return pr["number"]
        issue = payload.get("issue") or {}
        if issue.get("pull_request"):
            return issue.get("number")
        return None

    def requested_reviewer_logins(self, pr: dict[str, Any]) -> list[str]:
        return [reviewer["login"] for reviewer in pr.get("requested_reviewers") or [] if reviewer.get("login")]

    def is_bot(self, user: dict[str, Any] | None) -> bool:
        return str((user or {}).get("type", "")).lower() == "bot"

    def is_this_bot(self, user: dict[str, Any] | None) -> bool:
        login = (user or {}).get("login", "")
        return self.is_bot(user) and login in (self.bot_name, f"{self.bot_name}[bot]")

    def verify_signature(
        self,
        payload_body: bytes,
        signature_header: Optional[str],
        secret: Optional[str],
    ) -> bool:
        """Verify GitHub webhook signature header."""
        if not secret:
            return True

        if not signature_header or "=" not in signature_header:
            return False

        hash_algorithm, github_signature = signature_header.split("=", 1)
        if hash_algorithm != "sha256":
            return False

        mac = hmac.new(
            str(secret).encode("utf-8"),
            msg=payload_body,
            digestmod=hashlib.sha256,
        )
        expected_signature = mac.hexdigest()
        return hmac.compare_digest(expected_signature, github_signature)
