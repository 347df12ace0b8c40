import json
import logging
from typing import Any, Dict

import redis

logger = logging.getLogger(__name__)

RELEASE_PUBLISHED = "RELEASE_PUBLISHED"


class EventPublisher:
    """Publishes ``{"type", "payload"}`` messages on a Redis pub/sub channel."""

    def __init__(self, redis_client: Any, channel: str = "events") -> None:
        self.redis_client = redis_client
        self.channel = channel

    def publish(self, event_type: str, payload: Dict[str, Any]) -> bool:
        try:
            self.redis_client.publish(
                self.channel, json.dumps({"type": event_type, "payload": payload})
            )
        except redis.RedisError as e:
            logger.error(f"Failed to publish {event_type} event: {e}")
            return False
        return True
