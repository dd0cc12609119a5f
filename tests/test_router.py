"""Tests for webhook dispatch."""

from unittest.mock import AsyncMock

import pytest

from reviewflow.webhooks.router import HANDLERS, WebhookRouter

REPOSITORY = {"id": 42, "full_name": "acme/web", "name": "web", "owner": {"login": "acme"}}


def test_every_supported_event_has_a_handler():
    assert set(HANDLERS) == {
        "pull_request.opened",
        "pull_request.synchronize",
        "pull_request.review_requested",
        "pull_request.review_request_removed",
        "pull_request_review.submitted",
        "pull_request_review.dismissed",
        "issue_comment.created",
        "pull_request_review_comment.created",
    }


@pytest.mark.asyncio
async def test_dispatches_with_repo_context(runtime, repo_ctx):
    handler = AsyncMock(return_value={"status": "done"})
    runtime.repo_contexts.obtain = AsyncMock(return_value=repo_ctx)
    router = WebhookRouter(runtime, handlers={"pull_request.opened": handler})
    payload = {"action": "opened", "repository": REPOSITORY, "pull_request": {"number": 7}}

    result = await router.dispatch("pull_request", payload, "delivery-1")

    assert result == {"status": "done", "event": "pull_request.opened"}
    runtime.repo_contexts.obtain.assert_awaited_once_with("acme", 42, "acme/web")
    handler.assert_awaited_once_with(runtime, repo_ctx, payload)


@pytest.mark.asyncio
async def test_unhandled_event(runtime):
    router = WebhookRouter(runtime)
    result = await router.dispatch("pull_request", {"action": "labeled", "repository": REPOSITORY})
    assert result == {"status": "unhandled", "event": "pull_request.labeled"}
    assert router.handles("pull_request.opened")
    assert not router.handles("pull_request.labeled")


@pytest.mark.asyncio
async def test_unsupported_org_is_ignored(runtime):
    handler = AsyncMock()
    runtime.repo_contexts.obtain = AsyncMock(return_value=None)
    router = WebhookRouter(runtime, handlers={"pull_request.opened": handler})

    result = await router.dispatch("pull_request", {"action": "opened", "repository": REPOSITORY})

    assert result["status"] == "ignored_unsupported_org"
    handler.assert_not_called()


@pytest.mark.asyncio
async def test_payload_without_repository(runtime):
    router = WebhookRouter(runtime, handlers={"pull_request.opened": AsyncMock()})
    result = await router.dispatch("pull_request", {"action": "opened"})
    assert result["status"] == "ignored_no_repository"


@pytest.mark.asyncio
async def test_handler_failure_is_logged_not_raised(runtime, repo_ctx, caplog):
    runtime.repo_contexts.obtain = AsyncMock(return_value=repo_ctx)
    handler = AsyncMock(side_effect=RuntimeError("boom"))
    router = WebhookRouter(runtime, handlers={"pull_request.opened": handler})
    payload = {"action": "opened", "repository": REPOSITORY, "pull_request": {"number": 7}}

    result = await router.dispatch("pull_request", payload, "delivery-2")

    assert result == {"status": "error", "event": "pull_request.opened", "error": "boom"}
    assert "Error handling pull_request.opened (delivery delivery-2) for acme/web#7" in caplog.text


@pytest.mark.asyncio
async def test_context_build_failure_is_logged_not_raised(runtime):
    runtime.repo_contexts.obtain = AsyncMock(side_effect=RuntimeError("labels unavailable"))
    router = WebhookRouter(runtime)
    payload = {"action": "opened", "repository": REPOSITORY, "pull_request": {"number": 7}}

    result = await router.dispatch("pull_request", payload)

    assert result["status"] == "error"
