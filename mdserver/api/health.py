"""
Health check endpoint.
"""
from fastapi import APIRouter, Depends

from mdserver.application.sync import SyncScheduler
from mdserver.settings import Settings

from .deps import get_scheduler, get_settings

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health_check(
    settings: Settings = Depends(get_settings),
    scheduler: SyncScheduler = Depends(get_scheduler),
):
    """Health check endpoint."""
    last = scheduler.last_result
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": settings.VERSION,
        "sync": {
            "running": scheduler.is_running,
            "state": scheduler.state.value,
            "last_cycle": last.as_dict() if last else None,
        },
    }
