"""Shared MongoDB helpers for the entity stores."""

from enum import Enum
from typing import Any, Dict, Generic, List, Optional, Type, TypeVar, Union

from bson import ObjectId
from bson.errors import InvalidId
from pydantic import BaseModel
from pymongo.collection import Collection
from pymongo.database import Database


class CollectionName(str, Enum):
    APP_CONNECTIONS = "app_connections"
    REPOSITORIES = "repositories"


T = TypeVar("T", bound=BaseModel)


class BaseRepository(Generic[T]):
    """Typed lookups and ``$set`` updates over one collection."""

    def __init__(self, db: Database, collection_name: CollectionName, model_class: Type[T]):
        self.db = db
        self.collection: Collection = db[collection_name.value]
        self.model_class = model_class

    def find_by_id(self, entity_id: Union[str, ObjectId, None]) -> Optional[T]:
        identifier = self._to_object_id(entity_id)
        if identifier is None:
            return None
        return self._to_model(self.collection.find_one({"_id": identifier}))

    def find_one(self, query: Dict[str, Any]) -> Optional[T]:
        return self._to_model(self.collection.find_one(query))

    def find_many(self, query: Dict[str, Any], sort: Optional[List[tuple]] = None) -> List[T]:
        cursor = self.collection.find(query)
        if sort:
            cursor = cursor.sort(sort)
        return [self._to_model(doc) for doc in cursor]

    def find_ids(self, query: Optional[Dict[str, Any]] = None) -> List[str]:
        """Ids only, as strings ready for a task payload."""
        return [str(doc["_id"]) for doc in self.collection.find(query or {}, {"_id": 1})]

    def update(self, entity_id: Union[str, ObjectId], fields: Dict[str, Any]) -> bool:
        """``$set`` ``fields`` on one document; False when no document matched."""
        identifier = self._to_object_id(entity_id)
        if identifier is None:
            return False
        result = self.collection.update_one({"_id": identifier}, {"$set": fields})
        return result.matched_count > 0

    def _to_model(self, doc: Optional[Dict[str, Any]]) -> Optional[T]:
        return self.model_class.model_validate(doc) if doc else None

    @staticmethod
    def _to_object_id(entity_id: Union[str, ObjectId, None]) -> Optional[ObjectId]:
        if entity_id is None or isinstance(entity_id, ObjectId):
            return entity_id
        try:
            return ObjectId(entity_id)
        except (InvalidId, TypeError):
            return None
