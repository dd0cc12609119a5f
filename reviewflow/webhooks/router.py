"""Route webhook deliveries to handlers, one isolated task per delivery."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

from reviewflow.core.repo_context import RepoContext
from reviewflow.webhooks import comment_handlers, pr_handlers

if TYPE_CHECKING:
    from reviewflow.runtime import ReviewflowRuntime

logger = logging.getLogger(__name__)

Handler = Callable[["ReviewflowRuntime", RepoContext, dict[str, Any]], Awaitable[dict[str, Any]]]

HANDLERS: dict[str, Handler] = {
    "pull_request.opened": pr_handlers.handle_pull_request_opened,
    "pull_request.synchronize": pr_handlers.handle_pull_request_synchronize,
    "pull_request.review_requested": pr_handlers.handle_review_requested,
    "pull_request.review_request_removed": pr_handlers.handle_review_request_removed,
    "pull_request_review.submitted": pr_handlers.handle_review_submitted,
    "pull_request_review.dismissed": pr_handlers.handle_review_dismissed,
    "issue_comment.created": comment_handlers.handle_comment_created,
    "pull_request_review_comment.created": comment_handlers.handle_comment_created,
}


class WebhookRouter:
    """Dispatch deliveries to handlers; failures are logged, never raised."""

    def __init__(self, runtime: ReviewflowRuntime, handlers: dict[str, Handler] | None = None):
        self._runtime = runtime
        self._handlers = dict(HANDLERS if handlers is None else handlers)

    def handles(self, event_name: str) -> bool:
        return event_name in self._handlers

    async def dispatch(self, event_type: str, payload: dict[str, Any], delivery_id: str | None = None) -> dict[str, Any]:
        policy = self._runtime.policy
        event_name = policy.event_name(event_type, payload)
        handler = self._handlers.get(event_name)
        if handler is None:
            logger.debug("Unhandled event %s (delivery %s)", event_name, delivery_id)
            return {"status": "unhandled", "event": event_name}

        repo_ref = policy.repository_ref(payload)
        if repo_ref is None:
            logger.warning("Event %s (delivery %s) has no repository", event_name, delivery_id)
            return {"status": "ignored_no_repository", "event": event_name}

        pr_number = policy.pull_request_number(payload)
        try:
            repo_ctx = await self._runtime.repo_contexts.obtain(
                repo_ref.org_login, repo_ref.repo_id, repo_ref.full_name
            )
            if repo_ctx is None:
                return {"status": "ignored_unsupported_org", "event": event_name}
            result = await handler(self._runtime, repo_ctx, payload)
        except Exception as exc:
            logger.exception(
                "Error handling %s (delivery %s) for %s#%s",
                event_name,
                delivery_id,
                repo_ref.full_name,
                pr_number,
            )
            return {"status": "error", "event": event_name, "error": str(exc)}

        logger.info("Handled %s for %s#%s: %s", event_name, repo_ref.full_name, pr_number, result.get("status"))
        return {**result, "event": event_name}
