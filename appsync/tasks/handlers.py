"""Task handlers and the hook to handler table registered with the queue."""

from __future__ import annotations

import logging
from typing import Any, Dict

from pymongo.errors import PyMongoError

from appsync.exceptions import AppSyncError
from appsync.queue import TaskHandler
from appsync.tasks import (
    TASK_HEALTH_CHECK_ALL_CONNECTIONS,
    TASK_HEALTH_CHECK_ALL_REPOSITORIES,
    TASK_HEALTH_CHECK_SINGLE_CONNECTION,
    TASK_HEALTH_CHECK_SINGLE_REPOSITORY,
    TASK_SYNC_ALL_CONNECTIONS,
    TASK_SYNC_SINGLE_CONNECTION,
    TASK_SYNC_SINGLE_REPOSITORY,
)
from appsync.workers.context import WorkerContext

logger = logging.getLogger(__name__)


def sync_all_connections(ctx: WorkerContext) -> Dict[str, Any]:
    return ctx.sync_engine().run()


def sync_single_connection(ctx: WorkerContext, connection_id: str) -> Dict[str, Any]:
    try:
        full_names = ctx.sync_engine().sync_connection_by_id(connection_id)
    except (AppSyncError, PyMongoError) as exc:
        logger.error("Sync failed for app connection %s: %s", connection_id, exc)
        return {"connection_id": connection_id, "status": "failed", "error": str(exc)}
    return {"connection_id": connection_id, "status": "synced", "repositories": len(full_names)}


def sync_single_repository(ctx: WorkerContext, repo_id: str) -> Dict[str, Any]:
    try:
        repository = ctx.sync_engine().sync_repository(repo_id)
    except (AppSyncError, PyMongoError) as exc:
        logger.error("Sync failed for repository %s: %s", repo_id, exc)
        return {"repo_id": repo_id, "status": "failed", "error": str(exc)}
    return {"repo_id": repo_id, "status": "synced", "full_name": repository.full_name}


def fan_out_connection_checks(ctx: WorkerContext) -> int:
    connection_ids = ctx.connections.find_ids()
    for connection_id in connection_ids:
        ctx.queue.enqueue_async(
            TASK_HEALTH_CHECK_SINGLE_CONNECTION, {"connection_id": connection_id}
        )
    return len(connection_ids)


def fan_out_repository_checks(ctx: WorkerContext) -> int:
    repo_ids = ctx.repositories.find_ids()
    for repo_id in repo_ids:
        ctx.queue.enqueue_async(TASK_HEALTH_CHECK_SINGLE_REPOSITORY, {"repo_id": repo_id})
    return len(repo_ids)


def health_check_all_connections(ctx: WorkerContext) -> Dict[str, int]:
    """Daily fan-out: one check per connection and one per repository."""
    connections = fan_out_connection_checks(ctx)
    repositories = fan_out_repository_checks(ctx)
    logger.info(
        "Enqueued health checks for %d connections and %d repositories",
        connections,
        repositories,
    )
    return {"connections": connections, "repositories": repositories}


def health_check_all_repositories(ctx: WorkerContext) -> Dict[str, int]:
    return {"repositories": fan_out_repository_checks(ctx)}


def health_check_single_connection(ctx: WorkerContext, connection_id: str) -> Dict[str, Any]:
    status = ctx.health_runner().check_connection(connection_id)
    return {"connection_id": connection_id, "health_status": status.value if status else None}


def health_check_single_repository(ctx: WorkerContext, repo_id: str) -> Dict[str, Any]:
    status = ctx.health_runner().check_repository(repo_id)
    return {"repo_id": repo_id, "health_status": status.value if status else None}


def build_handler_registry() -> Dict[str, TaskHandler]:
    return {
        TASK_SYNC_ALL_CONNECTIONS: sync_all_connections,
        TASK_SYNC_SINGLE_CONNECTION: sync_single_connection,
        TASK_SYNC_SINGLE_REPOSITORY: sync_single_repository,
        TASK_HEALTH_CHECK_ALL_CONNECTIONS: health_check_all_connections,
        TASK_HEALTH_CHECK_ALL_REPOSITORIES: health_check_all_repositories,
        TASK_HEALTH_CHECK_SINGLE_CONNECTION: health_check_single_connection,
        TASK_HEALTH_CHECK_SINGLE_REPOSITORY: health_check_single_repository,
    }
