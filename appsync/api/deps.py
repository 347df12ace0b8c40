"""Common dependencies for API endpoints."""

from fastapi import Depends
from pymongo.database import Database

from appsync.core.config import settings
from appsync.core.redis import get_redis
from appsync.database.mongo import get_db
from appsync.repositories import AppConnectionRepository
from appsync.services.github.github_app import GitHubClientFactory
from appsync.services.github.github_webhook import WebhookReconciler
from appsync.services.update_cache import UpdateCache
from appsync.utils.events import EventPublisher


def get_task_queue():
    from appsync.celery_app import task_queue

    return task_queue


def get_webhook_reconciler(
    db: Database = Depends(get_db),
    queue=Depends(get_task_queue),
) -> WebhookReconciler:
    redis_client = get_redis()
    return WebhookReconciler(
        connections=AppConnectionRepository(db),
        update_cache=UpdateCache(redis_client, settings.cache.update_keys),
        events=EventPublisher(redis_client, settings.cache.events_channel),
        queue=queue,
        clients=GitHubClientFactory(
            api_url=settings.github.api_url, redis_client=redis_client
        ),
    )


__all__ = ["get_db", "get_task_queue", "get_webhook_reconciler"]
