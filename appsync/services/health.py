"""Health checks for app connections and repositories."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Tuple

import httpx
from jose.exceptions import JOSEError

from appsync.exceptions import GithubError
from appsync.models import AppConnection, HealthStatus, Repository
from appsync.repositories import AppConnectionRepository, RepositoryRepository
from appsync.services.github.github_app import GitHubClientFactory

logger = logging.getLogger(__name__)

# Failures of the probe itself are recorded on the target, never raised
PROBE_ERRORS = (GithubError, JOSEError, httpx.HTTPError, ValueError)

ACCESS_RANK = {"read": 1, "write": 2, "admin": 3}


class HealthCheckRunner:
    """
    Runs a single connection or repository check and writes the outcome back.
    """

    def __init__(
        self,
        connections: AppConnectionRepository,
        repositories: RepositoryRepository,
        clients: GitHubClientFactory,
        required_permissions: Optional[Dict[str, str]] = None,
    ) -> None:
        self.connections = connections
        self.repositories = repositories
        self.clients = clients
        self.required_permissions = required_permissions or {}

    def check_connection(self, connection_id: str) -> Optional[HealthStatus]:
        connection = self.connections.find_by_id(connection_id)
        if connection is None:
            logger.warning("Health check skipped: app connection %s not found", connection_id)
            return None

        status, message = self._evaluate_connection(connection)
        self.connections.update_health(connection.id, status, message)
        logger.info(
            "App connection %s health: %s",
            connection.slug or connection.id,
            status.value,
            extra={"health_message": message},
        )
        return status

    def check_repository(self, repo_id: str) -> Optional[HealthStatus]:
        repository = self.repositories.find_by_id(repo_id)
        if repository is None:
            logger.warning("Health check skipped: repository %s not found", repo_id)
            return None

        status, message = self._evaluate_repository(repository)
        self.repositories.update_health(repository.id, status, message)
        logger.info(
            "Repository %s health: %s",
            repository.full_name,
            status.value,
            extra={"health_message": message},
        )
        return status

    def _evaluate_connection(self, connection: AppConnection) -> Tuple[HealthStatus, str]:
        if not connection.slug:
            return HealthStatus.ERROR, "Configuration error: the app connection has no slug."
        if not connection.app_id:
            return HealthStatus.ERROR, "Configuration error: the GitHub App ID is missing."
        if not connection.installation_id:
            return HealthStatus.ERROR, "Configuration error: the Installation ID is missing."
        if not connection.private_key:
            return HealthStatus.ERROR, "Configuration error: the private key is missing."

        debug_info = (
            f' (GitHub App ID "{connection.app_id}",'
            f' Installation ID "{connection.installation_id}")'
        )
        try:
            with self.clients.app_client(connection) as client:
                app = client.get_authenticated_app()
        except PROBE_ERRORS as exc:
            return HealthStatus.ERROR, f"GitHub API error: {exc}{debug_info}"

        if not app.get("id"):
            return (
                HealthStatus.ERROR,
                "API validation failed: the authenticated app could not be verified." + debug_info,
            )
        if str(app["id"]) != str(connection.app_id):
            return HealthStatus.ERROR, (
                f'Credential mismatch: authenticated as app "{app.get("name", "Unknown")}"'
                f" (ID {app['id']}) but the connection is configured for app ID"
                f" {connection.app_id}."
            )

        missing = self._missing_permissions(app.get("permissions") or {})
        if missing:
            return HealthStatus.WARN, (
                "Authenticated, but the app is missing required permissions: "
                + ", ".join(missing)
            )

        return (
            HealthStatus.OK,
            "Successfully authenticated with GitHub and verified API connectivity and permissions.",
        )

    def _evaluate_repository(self, repository: Repository) -> Tuple[HealthStatus, str]:
        connection = (
            self.connections.find_by_id(repository.managing_app_id)
            if repository.managing_app_id
            else None
        )
        if connection is None:
            return (
                HealthStatus.ERROR,
                "Configuration error: this repository is not linked to a valid managing app.",
            )
        if connection.health_status != HealthStatus.OK:
            return (
                HealthStatus.ERROR,
                f"Dependency error: the managing app ({connection.slug}) is not healthy.",
            )

        try:
            with self.clients.installation_client(connection) as client:
                client.get_repository(repository.full_name)
        except PROBE_ERRORS as exc:
            return HealthStatus.ERROR, (
                "API validation failed: the managing app may no longer have permission"
                f" to access this repository. Error: {exc}"
            )

        return HealthStatus.OK, "Successfully connected and validated repository access."

    def _missing_permissions(self, granted: Dict[str, str]) -> List[str]:
        return [
            f"{name}: {level}"
            for name, level in self.required_permissions.items()
            if ACCESS_RANK.get(granted.get(name), 0) < ACCESS_RANK.get(level, 1)
        ]
