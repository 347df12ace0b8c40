"""Repository for app connections."""

from datetime import datetime
from typing import List, Optional, Sequence

from bson import ObjectId

from appsync.models import AppConnection, HealthStatus
from appsync.models.base import utcnow
from appsync.repositories.base import BaseRepository, CollectionName


class AppConnectionRepository(BaseRepository[AppConnection]):
    def __init__(self, db):
        super().__init__(db, CollectionName.APP_CONNECTIONS, AppConnection)

    def list_all(self) -> List[AppConnection]:
        return self.find_many({}, sort=[("slug", 1)])

    def find_by_slug(self, slug: str) -> Optional[AppConnection]:
        return self.find_one({"slug": slug})

    def list_with_webhook_secret(self) -> List[AppConnection]:
        return self.find_many(
            {"webhook_secret": {"$nin": [None, ""]}}, sort=[("slug", 1)]
        )

    def replace_accessible_repos(
        self,
        connection_id: str | ObjectId,
        full_names: Sequence[str],
        synced_at: Optional[datetime] = None,
    ) -> bool:
        # Wholesale $set, never $addToSet: the list mirrors the latest sync only
        now = synced_at or utcnow()
        return self.update(
            connection_id,
            {
                "accessible_repos": list(full_names),
                "last_synced_at": now,
                "updated_at": now,
            },
        )

    def update_installation_id(
        self, connection_id: str | ObjectId, installation_id: int
    ) -> bool:
        return self.update(
            connection_id,
            {"installation_id": installation_id, "updated_at": utcnow()},
        )

    def update_health(
        self, connection_id: str | ObjectId, status: HealthStatus, message: str
    ) -> bool:
        now = utcnow()
        return self.update(
            connection_id,
            {
                "health_status": HealthStatus(status).value,
                "health_message": message,
                "last_checked_at": now,
                "updated_at": now,
            },
        )


__all__ = ["AppConnectionRepository"]
