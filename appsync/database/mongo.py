"""Shared MongoDB helpers."""

from __future__ import annotations

from typing import Any, Dict, Tuple

from pymongo import MongoClient
from pymongo.database import Database

from appsync.core.config import settings

_clients: Dict[Tuple[str, frozenset], MongoClient] = {}


def get_client(uri: str, **kwargs: Any) -> MongoClient:
    """
    Return a cached MongoClient keyed by URI and options.
    This avoids creating many clients across the API and the workers.
    """
    key = (uri, frozenset(kwargs.items()))
    if key not in _clients:
        _clients[key] = MongoClient(uri, **kwargs)
    return _clients[key]


def get_database() -> Database:
    """Return a MongoDB database handle (non-dependency use)."""
    client = get_client(settings.mongo.uri, **settings.mongo.options)
    return client[settings.mongo.database]


def get_db():
    """FastAPI dependency that yields a database handle."""
    # Clients are cached; PyMongo manages pooling, nothing to close here.
    yield get_database()
