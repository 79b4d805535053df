from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
import logging

from ecotrack.dependencies import get_sync_service, require_api_key
from ecotrack.routers.events import publish_event
from ecotrack.services.sync import SyncService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["sync"])

@router.post("/sync-firebase", dependencies=[Depends(require_api_key)])
async def sync_firebase(service: SyncService = Depends(get_sync_service)):
    """Copy the current Firebase snapshot into the database (called by cron or the scheduler)"""
    result = await service.run_tick()
    content = result.model_dump(mode="json", exclude_none=True)

    if result.skipped:
        return JSONResponse(content=content, status_code=200)

    publish_event({"type": "sync", **content})
    if result.success:
        return JSONResponse(content=content, status_code=200)
    if result.database_unavailable or result.realtime_unavailable:
        return JSONResponse(content=content, status_code=503)
    return JSONResponse(content=content, status_code=500)
