"""HTTP-level webhook request processing."""

from collections.abc import Callable
from typing import Any

from reviewflow.webhooks.policy import GithubWebhookPolicy, infer_event_type


def process_webhook_request(
    *,
    payload_body: bytes,
    headers: dict[str, Any],
    payload_json: dict[str, Any] | None,
    logger,
    policy: GithubWebhookPolicy,
    verify_signature: Callable[[bytes, str | None], bool],
    is_handled: Callable[[str], bool],
    schedule_delivery: Callable[[str, dict[str, Any], str | None], None],
) -> tuple[dict[str, Any], int]:
    """Process one webhook request and return JSON payload + status code.

    Handled deliveries are scheduled for asynchronous processing and
    acknowledged immediately with 202.
    """
    signature = headers.get("X-Hub-Signature-256")
    if not verify_signature(payload_body, signature):
        logger.error("Webhook signature verification failed")
        return {"error": "Invalid signature"}, 403

    payload = payload_json or {}
    event_type = headers.get("X-GitHub-Event")
    if not event_type:
        inferred_event_type = infer_event_type(payload)
        if inferred_event_type:
            logger.warning("Missing X-GitHub-Event header; inferred event type: %s", inferred_event_type)
            event_type = inferred_event_type
        else:
            logger.error("No X-GitHub-Event header and could not infer event type")
            return {"error": "No event type"}, 400

    delivery_id = headers.get("X-GitHub-Delivery")
    event_name = policy.event_name(event_type, payload)
    logger.info("Webhook received: %s (delivery: %s)", event_name, delivery_id)

    if event_type == "ping":
        return {"status": "pong"}, 200

    if not is_handled(event_name):
        return {"status": "unhandled", "event": event_name}, 200

    try:
        schedule_delivery(event_type, payload, delivery_id)
    except Exception as exc:
        logger.error("Could not schedule %s (delivery %s): %s", event_name, delivery_id, exc, exc_info=True)
        return {"error": str(exc)}, 500
    return {"status": "queued", "event": event_name, "delivery": delivery_id}, 202
