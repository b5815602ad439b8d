"""
TIPSTREAM - Health Check Route
"""

from datetime import datetime
from typing import Any, Dict

from fastapi import APIRouter, Depends

from tipstream import __version__
from tipstream.api.dependencies import get_db, get_scheduler
from tipstream.core.database import DatabaseManager
from tipstream.services.scheduling.scheduler_service import SchedulerService

router = APIRouter(tags=["health"])

_start_time = datetime.utcnow()


@router.get("/health")
async def health(
    db: DatabaseManager = Depends(get_db),
    scheduler: SchedulerService = Depends(get_scheduler),
) -> Dict[str, Any]:
    database = await db.health_check()
    return {
        "status": "healthy" if database["status"] == "healthy" else "degraded",
        "timestamp": datetime.utcnow().isoformat(),
        "version": __version__,
        "uptime_seconds": round((datetime.utcnow() - _start_time).total_seconds(), 1),
        "database": database,
        "scheduler": scheduler.get_status(),
        "jobs": scheduler.get_jobs(),
    }
