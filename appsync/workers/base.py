"""Celery base task definitions for workers."""

import logging
from typing import Any

from celery import Task
from pymongo.database import Database

from appsync.core.config import settings
from appsync.core.redis import get_redis
from appsync.database.mongo import get_database
from appsync.queue import CeleryTaskQueue
from appsync.services.github.github_app import GitHubClientFactory
from appsync.workers.context import WorkerContext

logger = logging.getLogger(__name__)


class SyncTask(Task):
    """
    Base Celery task for the sync and health handlers.

    Lazily provides a MongoDB handle and the ``WorkerContext`` handed to the
    registered handler.
    """

    abstract = True

    def __init__(self) -> None:
        self._db: Database | None = None
        self._context: WorkerContext | None = None

    def after_return(
        self, status: str, retval: Any, task_id: str, args: tuple, kwargs: dict, einfo
    ) -> None:  # pragma: no cover - lifecycle hook
        # PyMongo handles pooling; drop references only.
        self._db = None
        self._context = None

    @property
    def db(self) -> Database:
        if self._db is None:
            self._db = get_database()
        return self._db

    @property
    def context(self) -> WorkerContext:
        if self._context is None:
            self._context = WorkerContext.build(
                db=self.db,
                clients=GitHubClientFactory(
                    api_url=settings.github.api_url,
                    redis_client=get_redis(),
                    timeout=settings.github.timeout,
                ),
                queue=CeleryTaskQueue(self.app),
                sync_settings=settings.sync,
                health_settings=settings.health,
            )
        return self._context

    def on_failure(
        self, exc: Exception, task_id: str, args: tuple, kwargs: dict, einfo
    ) -> None:  # pragma: no cover - logging only
        logger.error("Task %s failed: %s", self.name, exc, exc_info=exc)
