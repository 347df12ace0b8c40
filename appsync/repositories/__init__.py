from appsync.repositories.app_connection import AppConnectionRepository
from appsync.repositories.base import BaseRepository, CollectionName
from appsync.repositories.repository import RepositoryRepository

__all__ = [
    "AppConnectionRepository",
    "BaseRepository",
    "CollectionName",
    "RepositoryRepository",
]
