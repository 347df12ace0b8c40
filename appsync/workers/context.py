"""Collaborators shared by the task handlers of one worker."""

from __future__ import annotations

from dataclasses import dataclass

from pymongo.database import Database

from appsync.core.config import HealthSettings, SyncSettings
from appsync.queue import TaskQueue
from appsync.repositories import AppConnectionRepository, RepositoryRepository
from appsync.services.github.github_app import GitHubClientFactory
from appsync.services.github.github_sync import RepositorySyncEngine
from appsync.services.health import HealthCheckRunner


@dataclass
class WorkerContext:
    connections: AppConnectionRepository
    repositories: RepositoryRepository
    clients: GitHubClientFactory
    queue: TaskQueue
    sync_settings: SyncSettings
    health_settings: HealthSettings

    @classmethod
    def build(
        cls,
        db: Database,
        clients: GitHubClientFactory,
        queue: TaskQueue,
        sync_settings: SyncSettings,
        health_settings: HealthSettings,
    ) -> "WorkerContext":
        return cls(
            connections=AppConnectionRepository(db),
            repositories=RepositoryRepository(db),
            clients=clients,
            queue=queue,
            sync_settings=sync_settings,
            health_settings=health_settings,
        )

    def sync_engine(self) -> RepositorySyncEngine:
        return RepositorySyncEngine(
            self.connections,
            self.repositories,
            self.clients,
            self.queue,
            self.sync_settings,
        )

    def health_runner(self) -> HealthCheckRunner:
        return HealthCheckRunner(
            self.connections,
            self.repositories,
            self.clients,
            self.health_settings.required_permissions,
        )
