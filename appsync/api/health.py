"""
Health check endpoints
"""
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from pymongo.database import Database
from pymongo.errors import PyMongoError

from appsync.database.mongo import get_db

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health_check():
    """Simple API health check."""
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "service": "appsync",
    }


@router.get("/health/db")
async def database_health(db: Database = Depends(get_db)):
    """MongoDB health check."""
    try:
        db.command("ping")
    except PyMongoError as exc:
        return {
            "status": "unhealthy",
            "database": "disconnected",
            "error": str(exc),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    return {
        "status": "healthy",
        "database": "connected",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
