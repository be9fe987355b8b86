"""
Ручной запуск синхронизации SYNC_DIR -> хранилище.
"""
from fastapi import APIRouter, Depends
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from mdserver.application.sync import SyncScheduler
from mdserver.logging_config import get_logger

from .deps import get_scheduler

logger = get_logger("mdserver.api.sync")

router = APIRouter(prefix="/sync", tags=["Sync"])

SYNC_TIMEOUT_SECONDS = 60.0


@router.api_route("", methods=["GET", "POST"])
async def sync_directory(scheduler: SyncScheduler = Depends(get_scheduler)):
    """
    Выполнить цикл синхронизации и дождаться результата.

    Если цикл уже идёт, запрос ждёт следующий цикл, начавшийся после него.

    Returns:
        200 {"status": "success", ...} или 500 {"status": "error", ...}
    """
    result = await run_in_threadpool(scheduler.run_now, SYNC_TIMEOUT_SECONDS)

    if result is None:
        logger.error(f"❌ Manual sync did not finish in {SYNC_TIMEOUT_SECONDS}s")
        return JSONResponse(
            status_code=500,
            content={"status": "error", "message": "Sync timed out"},
        )

    if not result.success:
        return JSONResponse(
            status_code=500,
            content={"status": "error", "message": f"Sync failed: {result.error}", **result.as_dict()},
        )

    return {
        "status": "success",
        "message": "Files synced successfully",
        **result.as_dict(),
    }
