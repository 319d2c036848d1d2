"""Health check endpoints"""

from fastapi import APIRouter, Depends, Request
from typing import Dict, Any
from datetime import datetime, timezone

from digistore.core.config import settings
from digistore.api.deps import get_offline_cache, get_storage
from digistore.core.storage import StateStorage
from digistore.services.offline_cache import OfflineCacheManager

router = APIRouter()


@router.get("/health")
async def health_check(
    storage: StateStorage = Depends(get_storage),
    manager: OfflineCacheManager = Depends(get_offline_cache)
) -> Dict[str, Any]:
    """Basic health check with component status"""
    health_status: Dict[str, Any] = {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "components": {}
    }

    try:
        await storage.ping()
        health_status["components"]["storage"] = {
            "status": "healthy",
            "backend": storage.backend
        }
    except Exception as e:
        health_status["components"]["storage"] = {
            "status": "unhealthy",
            "error": str(e)
        }
        health_status["status"] = "degraded"

    health_status["components"]["offline_cache"] = {
        "status": "healthy",
        "version": manager.version,
        "caches": await manager.caches.keys()
    }

    return health_status
