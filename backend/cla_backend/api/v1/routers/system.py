# backend/cla_backend/api/v1/routers/system.py
from datetime import datetime
from typing import Any, Dict

from fastapi import APIRouter

from ....config import settings
from ....services.database_service import database_service

router = APIRouter()


@router.get("/health", tags=["System"])
async def health_check() -> Dict[str, Any]:
    """Health check endpoint."""
    database = await database_service.health_check()
    return {
        "status": "healthy" if database.get("status") == "healthy" else "degraded",
        "timestamp": datetime.now(),
        "version": settings.api_version,
        "database": database,
    }
