"""Repository for discovered GitHub repositories."""

from datetime import datetime
from typing import Any, Dict, Optional

from bson import ObjectId
from pymongo import ReturnDocument

from appsync.models import AppConnection, HealthStatus, Repository
from appsync.models.base import utcnow
from appsync.repositories.base import BaseRepository, CollectionName


class RepositoryRepository(BaseRepository[Repository]):
    def __init__(self, db):
        super().__init__(db, CollectionName.REPOSITORIES, Repository)
        self.collection.create_index("full_name", unique=True)

    def upsert_from_github(
        self,
        repo_data: Dict[str, Any],
        connection: AppConnection,
        synced_at: Optional[datetime] = None,
    ) -> Repository:
        """Create or update the row keyed by ``full_name`` from a GitHub repo payload."""
        now = synced_at or utcnow()
        update_doc = {
            "full_name": repo_data["full_name"],
            "github_id": repo_data["id"],
            "is_private": bool(repo_data.get("private", False)),
            "html_url": repo_data.get("html_url"),
            "description": repo_data.get("description"),
            "default_branch": repo_data.get("default_branch"),
            "managing_app_id": connection.id,
            "managing_app_slug": connection.slug,
            "last_synced_at": now,
            "updated_at": now,
        }
        doc = self.collection.find_one_and_update(
            {"full_name": repo_data["full_name"]},
            {
                "$set": update_doc,
                "$setOnInsert": {
                    "created_at": now,
                    "health_status": HealthStatus.UNKNOWN.value,
                    "health_message": "",
                },
            },
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        return self._to_model(doc)

    def update_health(
        self, repo_id: str | ObjectId, status: HealthStatus, message: str
    ) -> bool:
        now = utcnow()
        return self.update(
            repo_id,
            {
                "health_status": HealthStatus(status).value,
                "health_message": message,
                "last_checked_at": now,
                "updated_at": now,
            },
        )


__all__ = ["RepositoryRepository"]
