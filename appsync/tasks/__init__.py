"""Task hook names shared by the scheduler, the workers and the webhook path."""

# Recurring
TASK_SYNC_ALL_CONNECTIONS = "sync-all-connections"
TASK_HEALTH_CHECK_ALL_CONNECTIONS = "health-check-all-connections"
TASK_HEALTH_CHECK_ALL_REPOSITORIES = "health-check-all-repositories"

# One-shot
TASK_SYNC_SINGLE_CONNECTION = "sync-single-connection"
TASK_SYNC_SINGLE_REPOSITORY = "sync-single-repository"
TASK_HEALTH_CHECK_SINGLE_CONNECTION = "health-check-single-connection"
TASK_HEALTH_CHECK_SINGLE_REPOSITORY = "health-check-single-repository"

__all__ = [
    "TASK_SYNC_ALL_CONNECTIONS",
    "TASK_HEALTH_CHECK_ALL_CONNECTIONS",
    "TASK_HEALTH_CHECK_ALL_REPOSITORIES",
    "TASK_SYNC_SINGLE_CONNECTION",
    "TASK_SYNC_SINGLE_REPOSITORY",
    "TASK_HEALTH_CHECK_SINGLE_CONNECTION",
    "TASK_HEALTH_CHECK_SINGLE_REPOSITORY",
]
