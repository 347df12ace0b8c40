"""Cached "update available" state for plugins and themes."""

import logging
from typing import Any, Iterable, List

logger = logging.getLogger(__name__)


class UpdateCache:
    """
    Redis keys holding the host's update-check results.

    Invalidation deletes every key, so invalidating an already empty cache
    leaves it unchanged.
    """

    def __init__(self, redis_client: Any, keys: Iterable[str]) -> None:
        self.redis_client = redis_client
        self.keys: List[str] = list(keys)

    def invalidate(self) -> int:
        if not self.keys:
            return 0
        removed = self.redis_client.delete(*self.keys)
        logger.info("Cleared update cache", extra={"keys_removed": removed})
        return removed
