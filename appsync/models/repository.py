"""Repository entity - a GitHub repository discovered through an app connection"""

from datetime import datetime
from typing import Optional

from .base import BaseEntity, PyObjectId
from .health import HealthStatus


class Repository(BaseEntity):
    full_name: str
    github_id: int
    managing_app_id: Optional[PyObjectId] = None  # lookup only, last sync wins
    managing_app_slug: Optional[str] = None
    is_private: bool = False
    html_url: Optional[str] = None
    description: Optional[str] = None
    default_branch: Optional[str] = None
    last_synced_at: Optional[datetime] = None
    health_status: HealthStatus = HealthStatus.UNKNOWN
    health_message: str = ""
    last_checked_at: Optional[datetime] = None
