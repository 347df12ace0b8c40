"""Worker-side task base and context."""

from appsync.workers.base import SyncTask
from appsync.workers.context import WorkerContext

__all__ = ["SyncTask", "WorkerContext"]
