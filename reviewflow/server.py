"""Reviewflow webhook server.

Flask receives GitHub deliveries and hands each one to a single background
asyncio event loop, where it runs as an independent task. All handlers share
that loop, so the context caches see every concurrent delivery.

Endpoints:
- POST /webhook: GitHub webhook deliveries
- GET  /health:  liveness and cache sizes
"""

import asyncio
import logging
import threading
from concurrent.futures import Future
from typing import Any

from flask import Flask, jsonify, request

from reviewflow.runtime import ReviewflowRuntime
from reviewflow.webhooks.http_service import process_webhook_request
from reviewflow.webhooks.router import WebhookRouter

logger = logging.getLogger(__name__)


class EventLoopThread:
    """Run one asyncio event loop in a daemon thread and accept work from others."""

    def __init__(self, name: str = "reviewflow-loop"):
        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        return self._loop

    def start(self) -> "EventLoopThread":
        if not self._thread.is_alive():
            self._thread.start()
        return self

    def _run(self) -> None:
        asyncio.set_event_loop(self._loop)
        self._loop.run_forever()

    def submit(self, coro) -> Future:
        return asyncio.run_coroutine_threadsafe(coro, self._loop)

    def stop(self, timeout: float = 5.0) -> None:
        self._loop.call_soon_threadsafe(self._loop.stop)
        self._thread.join(timeout=timeout)


def create_app(
    runtime: ReviewflowRuntime,
    loop_thread: EventLoopThread,
    router: WebhookRouter | None = None,
) -> Flask:
    router = router or WebhookRouter(runtime)
    app = Flask(__name__)

    def verify_signature(payload_body: bytes, signature_header: str | None) -> bool:
        secret = runtime.settings.webhook_secret
        verified = runtime.policy.verify_signature(payload_body, signature_header, secret)
        if not secret:
            logger.warning("WEBHOOK_SECRET not configured - accepting all requests (INSECURE!)")
        return verified

    def schedule_delivery(event_type: str, payload: dict[str, Any], delivery_id: str | None) -> None:
        future = loop_thread.submit(router.dispatch(event_type, payload, delivery_id))

        def _done_callback(done: Future) -> None:
            try:
                done.result()
            except Exception as exc:
                logger.error("Delivery %s crashed outside its handler: %s", delivery_id, exc)

        future.add_done_callback(_done_callback)

    @app.route("/webhook", methods=["POST"])
    def webhook():
        body, status = process_webhook_request(
            payload_body=request.get_data(),
            headers=request.headers,
            payload_json=request.get_json(silent=True),
            logger=logger,
            policy=runtime.policy,
            verify_signature=verify_signature,
            is_handled=router.handles,
            schedule_delivery=schedule_delivery,
        )
        return jsonify(body), status

    @app.route("/health", methods=["GET"])
    def health():
        return (
            jsonify(
                {
                    "status": "ok",
                    "dry_run": runtime.dry_run,
                    "org_contexts": len(runtime.org_contexts),
                    "repo_contexts": len(runtime.repo_contexts),
                }
            ),
            200,
        )

    return app


def serve(runtime: ReviewflowRuntime, port: int) -> None:
    """Start the event loop thread and the webhook server (blocking)."""
    loop_thread = EventLoopThread().start()
    app = create_app(runtime, loop_thread)
    logger.info("Starting webhook server on port %d", port)
    logger.info("Webhook URL: http://localhost:%d/webhook", port)
    try:
        app.run(host="0.0.0.0", port=port, debug=False)
    finally:
        loop_thread.stop()
