from .app_connection import AppConnection
from .base import BaseEntity, PyObjectId
from .health import HealthStatus
from .repository import Repository

__all__ = [
    "AppConnection",
    "BaseEntity",
    "HealthStatus",
    "PyObjectId",
    "Repository",
]
