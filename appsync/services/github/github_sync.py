"""Periodic discovery of the repositories each app connection can access."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from pymongo.errors import PyMongoError

from appsync.core.config import SyncSettings
from appsync.exceptions import AppSyncError, ConfigurationError, PersistenceError
from appsync.models import AppConnection, Repository
from appsync.models.base import utcnow
from appsync.queue import TaskQueue
from appsync.repositories import AppConnectionRepository, RepositoryRepository
from appsync.services.github.github_app import GitHubClientFactory
from appsync.tasks import TASK_HEALTH_CHECK_SINGLE_REPOSITORY

logger = logging.getLogger(__name__)


class RepositorySyncEngine:
    """
    Pages through the repositories of every app connection, upserts them and
    fans out one health check per repository.
    """

    def __init__(
        self,
        connections: AppConnectionRepository,
        repositories: RepositoryRepository,
        clients: GitHubClientFactory,
        queue: TaskQueue,
        sync_settings: Optional[SyncSettings] = None,
    ) -> None:
        self.connections = connections
        self.repositories = repositories
        self.clients = clients
        self.queue = queue
        self.sync_settings = sync_settings or SyncSettings()

    def run(self) -> Dict[str, Any]:
        """Sync every app connection; a failing connection never stops the others."""
        summary: Dict[str, Any] = {"synced": {}, "skipped": [], "failed": {}}

        connections = self.connections.list_all()
        if not connections:
            logger.info("No App Connections found to sync.")
            return summary

        for connection in connections:
            label = connection.slug or str(connection.id)
            try:
                full_names = self.sync_one(connection)
            except ConfigurationError as exc:
                logger.warning("Skipping sync for %s: %s", label, exc)
                summary["skipped"].append(label)
            except (AppSyncError, PyMongoError) as exc:
                logger.error("Sync failed for app connection %s: %s", label, exc)
                summary["failed"][label] = str(exc)
            else:
                summary["synced"][label] = len(full_names)

        return summary

    def sync_connection_by_id(self, connection_id: str) -> List[str]:
        connection = self.connections.find_by_id(connection_id)
        if connection is None:
            raise ConfigurationError(f"App connection {connection_id} not found")
        return self.sync_one(connection)

    def sync_repository(self, repo_id: str) -> Repository:
        """Re-fetch one known repository through its managing app and upsert it."""
        repository = self.repositories.find_by_id(repo_id)
        if repository is None:
            raise ConfigurationError(f"Repository {repo_id} not found")
        connection = (
            self.connections.find_by_id(repository.managing_app_id)
            if repository.managing_app_id
            else None
        )
        if connection is None or not connection.slug:
            raise ConfigurationError(
                f"Managing app not found for repository {repository.full_name}"
            )

        with self.clients.installation_client(connection) as client:
            repo_data = client.get_repository(repository.full_name)

        synced = self._upsert(repo_data, connection, utcnow())
        logger.info("Successfully synced repository: %s", synced.full_name)
        return synced

    def sync_one(self, connection: AppConnection) -> List[str]:
        """
        Sync a single connection and return its new ``accessible_repos``.

        Raises ``ConfigurationError`` when the connection cannot be synced at all
        and ``GithubError`` when the listing fails; nothing is written in
        either case.
        """
        if not connection.slug:
            raise ConfigurationError(f"App connection {connection.id} has no slug")
        if not connection.installation_id:
            raise ConfigurationError(
                f"App connection {connection.slug} has no installation id yet"
            )

        with self.clients.installation_client(connection) as client:
            records = client.list_installation_repositories(
                per_page=self.sync_settings.per_page,
                max_pages=self.sync_settings.max_pages,
            )

        if not records:
            logger.info(
                "No repositories found in the API response for app: %s", connection.slug
            )
            self.connections.replace_accessible_repos(connection.id, [])
            return []

        synced_at = utcnow()
        upserted: Dict[str, Repository] = {}
        for repo_data in records:
            full_name = repo_data.get("full_name")
            if not full_name:
                logger.warning('Skipping repository with missing "full_name" in API response.')
                continue
            if full_name in upserted:
                continue
            try:
                upserted[full_name] = self._upsert(repo_data, connection, synced_at)
            except PersistenceError as exc:
                logger.error("Skipping %s for app %s: %s", full_name, connection.slug, exc)

        # Every upsert has landed before the list is replaced, and the list is
        # replaced before any health check is enqueued.
        full_names = list(upserted)
        self.connections.replace_accessible_repos(connection.id, full_names, synced_at)

        for repository in upserted.values():
            self.queue.enqueue_async(
                TASK_HEALTH_CHECK_SINGLE_REPOSITORY, {"repo_id": str(repository.id)}
            )

        logger.info(
            "Successfully synced %d repositories for app: %s",
            len(full_names),
            connection.slug,
        )
        return full_names

    def _upsert(self, repo_data: Dict[str, Any], connection: AppConnection, synced_at) -> Repository:
        try:
            return self.repositories.upsert_from_github(repo_data, connection, synced_at)
        except (PyMongoError, KeyError) as exc:
            raise PersistenceError(f"Could not upsert {repo_data.get('full_name')}: {exc}") from exc
