"""Celery application instance for the sync and health-check jobs."""

from __future__ import annotations

from celery import Celery, signals
from kombu import Queue

from appsync.core.config import ScheduleSettings, settings
from appsync.core.logging import setup_logging
from appsync.queue import CeleryTaskQueue
from appsync.tasks import (
    TASK_HEALTH_CHECK_ALL_CONNECTIONS,
    TASK_HEALTH_CHECK_ALL_REPOSITORIES,
    TASK_HEALTH_CHECK_SINGLE_CONNECTION,
    TASK_HEALTH_CHECK_SINGLE_REPOSITORY,
    TASK_SYNC_ALL_CONNECTIONS,
)
from appsync.tasks.handlers import build_handler_registry
from appsync.workers import SyncTask


@signals.setup_logging.connect
def on_setup_logging(**kwargs):
    setup_logging(settings.logging.level)


celery_app = Celery(
    "appsync",
    broker=settings.broker.url,
    backend=settings.broker.result_backend,
)

celery_app.conf.update(
    task_default_queue=settings.broker.default_queue,
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    task_ignore_result=settings.broker.result_backend is None,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    broker_connection_retry_on_startup=True,
    task_reject_on_worker_lost=True,
    task_routes={
        TASK_HEALTH_CHECK_SINGLE_CONNECTION: {"queue": settings.broker.health_queue},
        TASK_HEALTH_CHECK_SINGLE_REPOSITORY: {"queue": settings.broker.health_queue},
    },
    task_queues=(
        Queue(settings.broker.default_queue),
        Queue(settings.broker.health_queue),
    ),
)

task_queue = CeleryTaskQueue(celery_app)
registered_tasks = task_queue.register_handlers(build_handler_registry(), base=SyncTask)


def schedule_standing_jobs(queue: CeleryTaskQueue, schedule: ScheduleSettings) -> None:
    """Register the recurring sync and health fan-out jobs (idempotent)."""
    queue.schedule_recurring(
        TASK_SYNC_ALL_CONNECTIONS,
        schedule.sync_period_seconds,
        schedule.sync_initial_delay_seconds,
    )
    # Offset from the sync so both do not start together
    queue.schedule_recurring(
        TASK_HEALTH_CHECK_ALL_CONNECTIONS,
        schedule.health_period_seconds,
        schedule.health_initial_delay_seconds,
    )
    if schedule.repository_health_period_seconds:
        queue.schedule_recurring(
            TASK_HEALTH_CHECK_ALL_REPOSITORIES,
            schedule.repository_health_period_seconds,
            schedule.health_initial_delay_seconds,
        )


@celery_app.on_after_finalize.connect
def setup_periodic_tasks(sender: Celery, **kwargs) -> None:
    schedule_standing_jobs(CeleryTaskQueue(sender), settings.schedule)


__all__ = ["celery_app", "task_queue", "schedule_standing_jobs"]
