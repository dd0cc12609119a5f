"""Tests for the GitHub REST client."""

import asyncio
import io
import json
import urllib.error
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from reviewflow.adapters.git.github import GitHubApiError, GitHubClient


def _response(data, link=None):
    response = MagicMock()
    response.read.return_value = json.dumps(data).encode()
    response.headers = {"Link": link} if link else {}
    response.__enter__.return_value = response
    return response


class TestGitHubClient:
    def _make_client(self):
        return GitHubClient(token="ghp_test")

    def test_request_sends_auth_and_json(self):
        client = self._make_client()
        with patch("urllib.request.urlopen", return_value=_response({"id": 1})) as urlopen:
            result = asyncio.run(client.create_label("acme/web", "dev: approved", "64dd17", "desc"))

        assert result == {"id": 1}
        request = urlopen.call_args.args[0]
        assert request.full_url == "https://api.github.com/repos/acme/web/labels"
        assert request.get_method() == "POST"
        assert request.get_header("Authorization") == "Bearer ghp_test"
        assert json.loads(request.data) == {"name": "dev: approved", "color": "64dd17", "description": "desc"}

    def test_http_error_raises_api_error(self):
        client = self._make_client()
        exc = urllib.error.HTTPError("url", 404, "Not Found", {}, io.BytesIO(b'{"message":"Not Found"}'))
        with patch("urllib.request.urlopen", side_effect=exc):
            with pytest.raises(GitHubApiError) as exc_info:
                asyncio.run(client.get_pull("acme/web", 7))

        assert exc_info.value.status == 404
        assert exc_info.value.method == "GET"
        assert "Not Found" in exc_info.value.body

    def test_list_labels_follows_next_links(self):
        client = self._make_client()
        next_url = "https://api.github.com/repositories/1/labels?per_page=100&page=2"
        pages = [
            _response([{"id": 1, "name": "bug"}], link=f'<{next_url}>; rel="next", <{next_url}>; rel="last"'),
            _response([{"id": 2, "name": "dev: approved"}], link='<https://api.github.com/repositories/1/labels?page=1>; rel="prev"'),
        ]
        with patch("urllib.request.urlopen", side_effect=pages) as urlopen:
            labels = asyncio.run(client.list_labels("acme/web"))

        assert [label["id"] for label in labels] == [1, 2]
        assert urlopen.call_count == 2
        first, second = (call.args[0] for call in urlopen.call_args_list)
        assert first.full_url == "https://api.github.com/repos/acme/web/labels?per_page=100"
        assert second.full_url == next_url

    def test_list_reviews_single_page(self):
        client = self._make_client()
        with patch("urllib.request.urlopen", return_value=_response([{"id": 9}])) as urlopen:
            reviews = asyncio.run(client.list_reviews("acme/web", 7))

        assert reviews == [{"id": 9}]
        urlopen.assert_called_once()

    def test_update_label_quotes_current_name(self):
        client = self._make_client()
        with patch.object(client, "_patch", new=AsyncMock(return_value={})) as mock_patch:
            asyncio.run(client.update_label("acme/web", "needs design review", "design: needs review", "ffc44c", "d"))

        path, payload = mock_patch.call_args.args
        assert path == "repos/acme/web/labels/needs%20design%20review"
        assert payload["new_name"] == "design: needs review"

    def test_replace_labels(self):
        client = self._make_client()
        with patch.object(client, "_put", new=AsyncMock(return_value=[])) as mock_put:
            asyncio.run(client.replace_labels("acme/web", 7, ["bug", "dev: approved"]))

        mock_put.assert_awaited_once_with("repos/acme/web/issues/7/labels", {"labels": ["bug", "dev: approved"]})

    def test_list_check_runs_unwraps_payload(self):
        client = self._make_client()
        data = {"total_count": 1, "check_runs": [{"name": "reviewflow"}]}
        with patch.object(client, "_get", new=AsyncMock(return_value=data)):
            runs = asyncio.run(client.list_check_runs("acme/web", "headsha"))

        assert runs == [{"name": "reviewflow"}]

    def test_create_commit_status(self):
        client = self._make_client()
        with patch.object(client, "_post", new=AsyncMock(return_value={})) as mock_post:
            asyncio.run(client.create_commit_status("acme/web", "abc", "failure", "Awaiting review", "reviewflow"))

        mock_post.assert_awaited_once_with(
            "repos/acme/web/statuses/abc",
            {"state": "failure", "description": "Awaiting review", "context": "reviewflow"},
        )
