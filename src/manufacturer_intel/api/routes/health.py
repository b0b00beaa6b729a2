"""Health check endpoints."""
from fastapi import APIRouter, Depends
from typing import Dict, Any
import sqlite3
import time

from ...core.config import settings
from ...services.store import ManufacturerStore
from ..dependencies import get_manufacturer_store


router = APIRouter()


@router.get("/health", summary="Basic health check")
async def health_check() -> Dict[str, Any]:
    """Basic health check endpoint."""
    return {
        "status": "healthy",
        "timestamp": time.time(),
        "version": settings.APP_VERSION,
        "service": settings.APP_NAME
    }


@router.get("/health/ready", summary="Readiness check")
async def readiness_check(
    store: ManufacturerStore = Depends(get_manufacturer_store)
) -> Dict[str, Any]:
    """Readiness check: the store must answer a query."""
    try:
        running = len(store.get_running_jobs())
        database = "ok"
    except sqlite3.Error as e:
        running = None
        database = f"error: {e}"

    return {
        "status": "ready" if database == "ok" else "degraded",
        "timestamp": time.time(),
        "database": database,
        "running_jobs": running,
        "dispatch": settings.SCRAPE_DISPATCH
    }
