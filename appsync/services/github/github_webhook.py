"""Signature-verified GitHub webhook handling."""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from appsync.exceptions import MalformedPayloadError, SecurityValidationError
from appsync.models import AppConnection
from appsync.queue import TaskQueue
from appsync.repositories import AppConnectionRepository
from appsync.services.github.github_app import GitHubClientFactory
from appsync.services.update_cache import UpdateCache
from appsync.tasks import TASK_SYNC_SINGLE_CONNECTION
from appsync.utils.events import RELEASE_PUBLISHED, EventPublisher

logger = logging.getLogger(__name__)

SIGNATURE_PREFIX = "sha256="


def compute_signature(secret: str, body: bytes) -> str:
    digest = hmac.new(secret.encode("utf-8"), msg=body, digestmod=hashlib.sha256).hexdigest()
    return f"{SIGNATURE_PREFIX}{digest}"


def verify_signature(secret: str, signature: str, body: bytes) -> bool:
    """Constant-time comparison of ``signature`` against the HMAC of the raw body."""
    expected = compute_signature(secret, body)
    return hmac.compare_digest(expected.encode("utf-8"), signature.encode("utf-8"))


@dataclass
class WebhookResult:
    message: str
    event: str
    action: Optional[str] = None
    app: Optional[str] = None
    applied: List[str] = field(default_factory=list)
    status_code: int = 200


class WebhookReconciler:
    """
    Validates an inbound delivery and applies it to the stores.

    Rejections raise ``SecurityValidationError`` or ``MalformedPayloadError``;
    anything past the JSON parse is acknowledged, including events that change
    nothing. Every applied change is a last-write-wins assignment or a cache
    delete, so replaying a delivery is safe.
    """

    def __init__(
        self,
        connections: AppConnectionRepository,
        update_cache: UpdateCache,
        events: EventPublisher,
        queue: TaskQueue,
        clients: Optional[GitHubClientFactory] = None,
    ) -> None:
        self.connections = connections
        self.update_cache = update_cache
        self.events = events
        self.queue = queue
        self.clients = clients

    def handle(
        self,
        body: Optional[bytes],
        signature: Optional[str],
        event: Optional[str],
        app_slug: Optional[str] = None,
    ) -> WebhookResult:
        if not body or not signature or not event:
            logger.error("Invalid webhook request: missing payload, signature or event header.")
            raise SecurityValidationError(
                "Missing payload, signature or event header", status_code=400
            )

        connection = self._resolve_target(signature, body, app_slug)

        # Only the verified bytes are ever parsed
        try:
            payload = json.loads(body)
        except ValueError as exc:
            raise MalformedPayloadError(f"Invalid JSON payload: {exc}") from exc
        if not isinstance(payload, dict):
            raise MalformedPayloadError("Webhook payload must be a JSON object")

        action = payload.get("action")
        logger.info(
            "Webhook received: event %s action %s for app %s",
            event,
            action,
            connection.slug,
        )
        applied = self._dispatch(event, action, payload, connection)
        return WebhookResult(
            message="Webhook received and processed",
            event=event,
            action=action,
            app=connection.slug,
            applied=applied,
        )

    def _resolve_target(
        self, signature: str, body: bytes, app_slug: Optional[str]
    ) -> AppConnection:
        if app_slug:
            connection = self.connections.find_by_slug(app_slug)
            candidates = [connection] if connection and connection.webhook_secret else []
        else:
            candidates = self.connections.list_with_webhook_secret()

        if not candidates:
            logger.error("Webhook rejected: no webhook secret configured for %s", app_slug or "any app")
            raise SecurityValidationError("Webhook secret is not configured")

        if signature.startswith(SIGNATURE_PREFIX):
            for candidate in candidates:
                if verify_signature(candidate.webhook_secret, signature, body):
                    return candidate

        logger.error("Webhook validation failed: signature did not match any configured app.")
        raise SecurityValidationError("Webhook signature mismatch")

    def _dispatch(
        self,
        event: str,
        action: Optional[str],
        payload: Dict[str, Any],
        connection: AppConnection,
    ) -> List[str]:
        if event == "installation":
            return self._handle_installation(action, payload, connection)
        if event == "installation_repositories":
            self.queue.enqueue_async(
                TASK_SYNC_SINGLE_CONNECTION, {"connection_id": str(connection.id)}
            )
            logger.info("Repository list updated for %s. Triggering a new sync.", connection.slug)
            return ["sync_enqueued"]
        if event == "release" and action == "published":
            return self._handle_release_published(payload)
        if event == "ping":
            logger.info("Ping event received from GitHub. Webhook is active.")
        else:
            logger.info("Webhook event %s/%s not handled. Skipping.", event, action)
        return []

    def _handle_installation(
        self, action: Optional[str], payload: Dict[str, Any], connection: AppConnection
    ) -> List[str]:
        installation = payload.get("installation") or {}
        raw_id = installation.get("id") if isinstance(installation, dict) else None
        try:
            installation_id = int(raw_id)
        except (TypeError, ValueError):
            logger.warning("Installation event without a usable installation.id, ignoring")
            return []

        # Trust rests on the signature alone: the id is not checked against the
        # installations this app was previously bound to.
        self.connections.update_installation_id(connection.id, installation_id)
        applied = ["installation_id"]
        logger.info(
            "Installation %s (%s) recorded for app %s", installation_id, action, connection.slug
        )

        if action == "created":
            self.queue.enqueue_async(
                TASK_SYNC_SINGLE_CONNECTION, {"connection_id": str(connection.id)}
            )
            applied.append("sync_enqueued")
        elif action in ("deleted", "suspend") and self.clients is not None:
            self.clients.drop_cached_token(installation_id)
            applied.append("token_cleared")
        return applied

    def _handle_release_published(self, payload: Dict[str, Any]) -> List[str]:
        logger.info("New release published. Clearing update cache to force an update check.")
        self.update_cache.invalidate()
        self.events.publish(RELEASE_PUBLISHED, payload)
        return ["update_cache_invalidated", "release_event_published"]
