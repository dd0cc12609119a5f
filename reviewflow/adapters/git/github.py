"""GitHub REST API client.

Uses only the Python standard library (``urllib``); every request runs in a
worker thread through ``asyncio.to_thread`` so concurrent webhook handlers
interleave at each call.

Example::

    from reviewflow.adapters.git.github import GitHubClient

    gh = GitHubClient(token="ghp_…")
    labels = await gh.list_labels("acme/web")
"""

import asyncio
import json
import logging
import re
import urllib.error
import urllib.parse
import urllib.request
from typing import Any

logger = logging.getLogger(__name__)

_NEXT_LINK_RE = re.compile(r'<([^>]+)>;\s*rel="next"')


class GitHubApiError(RuntimeError):
    """HTTP error returned by the GitHub REST API."""

    def __init__(self, method: str, path: str, status: int, body: str = ""):
        self.method = method
        self.path = path
        self.status = status
        self.body = body
        super().__init__(f"GitHub API {method} {path} → HTTP {status}")


class GitHubClient:
    """GitHub REST API v3 client for the calls Reviewflow makes.

    Args:
        token: Token with ``repo`` scope (or an installation token).
        base_url: API root, for GitHub Enterprise deployments.
    """

    def __init__(self, token: str | None, base_url: str = "https://api.github.com"):
        self._token = token
        self._api_base = base_url.rstrip("/")

    # ------------------------------------------------------------------
    # Labels
    # ------------------------------------------------------------------

    async def list_labels(self, repo: str) -> list[dict[str, Any]]:
        return await self._get_all(f"repos/{repo}/labels?per_page=100")

    async def create_label(self, repo: str, name: str, color: str, description: str) -> dict[str, Any]:
        return await self._post(
            f"repos/{repo}/labels",
            {"name": name, "color": color, "description": description},
        )

    async def update_label(
        self,
        repo: str,
        current_name: str,
        name: str,
        color: str,
        description: str,
    ) -> dict[str, Any]:
        return await self._patch(
            f"repos/{repo}/labels/{urllib.parse.quote(current_name, safe='')}",
            {"new_name": name, "color": color, "description": description},
        )

    async def replace_labels(self, repo: str, number: int, names: list[str]) -> list[dict[str, Any]]:
        """Overwrite the whole label set of an issue or pull request."""
        return await self._put(f"repos/{repo}/issues/{number}/labels", {"labels": names})

    # ------------------------------------------------------------------
    # Pull requests
    # ------------------------------------------------------------------

    async def get_pull(self, repo: str, number: int) -> dict[str, Any]:
        return await self._get(f"repos/{repo}/pulls/{number}")

    async def list_reviews(self, repo: str, number: int) -> list[dict[str, Any]]:
        return await self._get_all(f"repos/{repo}/pulls/{number}/reviews?per_page=100")

    async def list_review_comments(self, repo: str, number: int) -> list[dict[str, Any]]:
        return await self._get_all(f"repos/{repo}/pulls/{number}/comments?per_page=100")

    async def request_reviewers(self, repo: str, number: int, reviewers: list[str]) -> dict[str, Any]:
        return await self._post(
            f"repos/{repo}/pulls/{number}/requested_reviewers",
            {"reviewers": reviewers},
        )

    async def add_assignees(self, repo: str, number: int, assignees: list[str]) -> dict[str, Any]:
        return await self._post(f"repos/{repo}/issues/{number}/assignees", {"assignees": assignees})

    # ------------------------------------------------------------------
    # Checks and statuses
    # ------------------------------------------------------------------

    async def list_check_runs(self, repo: str, ref: str) -> list[dict[str, Any]]:
        data = await self._get(f"repos/{repo}/commits/{ref}/check-runs")
        return data.get("check_runs", []) if isinstance(data, dict) else []

    async def create_check_run(self, repo: str, payload: dict[str, Any]) -> dict[str, Any]:
        return await self._post(f"repos/{repo}/check-runs", payload)

    async def create_commit_status(
        self,
        repo: str,
        sha: str,
        state: str,
        description: str,
        context: str,
        target_url: str | None = None,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {"state": state, "description": description, "context": context}
        if target_url:
            payload["target_url"] = target_url
        return await self._post(f"repos/{repo}/statuses/{sha}", payload)

    # ------------------------------------------------------------------
    # HTTP helpers (sync + asyncio.to_thread wrapper)
    # ------------------------------------------------------------------

    def _headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "Content-Type": "application/json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": "reviewflow",
        }
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    def _sync_fetch(self, method: str, url: str, path: str, payload: dict | None = None) -> tuple[Any, str]:
        """Perform one request; returns the decoded body and the ``Link`` header."""
        data = json.dumps(payload).encode() if payload is not None else None
        req = urllib.request.Request(url, data=data, headers=self._headers(), method=method)
        try:
            with urllib.request.urlopen(req, timeout=30) as resp:
                raw = resp.read()
                return (json.loads(raw) if raw else {}), resp.headers.get("Link") or ""
        except urllib.error.HTTPError as exc:
            body = exc.read().decode(errors="replace")
            logger.error("GitHub API %s %s → HTTP %d: %s", method, path, exc.code, body)
            raise GitHubApiError(method, path, exc.code, body) from exc

    def _sync_request(self, method: str, path: str, payload: dict | None = None) -> Any:
        url = f"{self._api_base}/{path.lstrip('/')}"
        data, _ = self._sync_fetch(method, url, path, payload)
        return data

    def _sync_get_all(self, path: str) -> list[Any]:
        """GET every page of a list endpoint, following ``rel="next"`` links."""
        url: str | None = f"{self._api_base}/{path.lstrip('/')}"
        items: list[Any] = []
        while url:
            data, link = self._sync_fetch("GET", url, path)
            items.extend(data or [])
            match = _NEXT_LINK_RE.search(link)
            url = match.group(1) if match else None
        return items

    async def _get(self, path: str) -> Any:
        return await asyncio.to_thread(self._sync_request, "GET", path)

    async def _get_all(self, path: str) -> list[Any]:
        return await asyncio.to_thread(self._sync_get_all, path)

    async def _post(self, path: str, payload: dict) -> Any:
        return await asyncio.to_thread(self._sync_request, "POST", path, payload)

    async def _put(self, path: str, payload: dict) -> Any:
        return await asyncio.to_thread(self._sync_request, "PUT", path, payload)

    async def _patch(self, path: str, payload: dict) -> Any:
        return await asyncio.to_thread(self._sync_request, "PATCH", path, payload)
