"""App connection entity - one configured GitHub App installation"""

from datetime import datetime
from typing import List, Optional

from pydantic import Field

from .base import BaseEntity
from .health import HealthStatus


class AppConnection(BaseEntity):
    slug: Optional[str] = None
    name: Optional[str] = None
    installation_id: Optional[int] = None
    # Credentials are written by the setup flow and read here as opaque values
    app_id: Optional[str] = None
    private_key: Optional[str] = None
    webhook_secret: Optional[str] = None
    health_status: HealthStatus = HealthStatus.UNKNOWN
    health_message: str = ""
    last_checked_at: Optional[datetime] = None
    accessible_repos: List[str] = Field(default_factory=list)
    last_synced_at: Optional[datetime] = None
