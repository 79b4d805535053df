from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional
import logging

from ecotrack import crud
from ecotrack.database import get_db, get_utc_datetime, isoformat_utc, settings
from ecotrack.dependencies import get_firebase_provider, require_api_key
from ecotrack.providers.firebase_provider import FirebaseProvider
from ecotrack.responses import live_response
from ecotrack.schemas.room import RoomResponse
from ecotrack.schemas.sensor import PowerReadingResponse, RoomSensorReadingResponse
from ecotrack.services.retention import cleanup_old_data

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["maintenance"])

@router.post("/cleanup", dependencies=[Depends(require_api_key)])
def cleanup(
    days: Optional[int] = Query(default=None),
    db: Session = Depends(get_db),
):
    """Delete readings older than `days` days (default RETENTION_DAYS)"""
    days = max(1, days if days is not None else settings.retention_days)
    crud.check_connection(db)
    deleted = cleanup_old_data(db, days)
    return {
        "success": True,
        "message": f"Deleted records older than {days} days",
        "deleted": deleted,
        "days": days,
        "timestamp": isoformat_utc(get_utc_datetime()),
    }

@router.get("/system-status")
async def system_status(provider: FirebaseProvider = Depends(get_firebase_provider)):
    """Online/offline state of the ESP32 hub as reported in Firebase"""
    status = await provider.get_device_status(settings.device_id)
    return live_response({"success": True, "deviceId": settings.device_id, **status})

@router.get("/debug")
def debug(db: Session = Depends(get_db)):
    """Configuration flags and database content overview; never exposes secrets"""
    environment = {
        "databaseDialect": settings.database_url.split(":", 1)[0],
        "hasFirebaseConfig": bool(settings.firebase_database_url),
        "hasSyncApiKey": bool(settings.sync_api_key),
        "syncRooms": [room.id for room in settings.room_sources],
        "schedulerEnabled": settings.sync_scheduler_enabled,
        "debug": settings.debug,
    }
    if not crud.is_connected(db):
        return live_response({"status": "error", "message": "Database not connected", "environment": environment}, 503)

    rooms = crud.get_rooms(db)
    latest_power = crud.get_latest_power_reading(db)
    latest_sensors = crud.get_latest_room_readings(db)
    return live_response({
        "status": "connected",
        "environment": environment,
        "database": {
            "rooms": {
                "count": len(rooms),
                "data": [RoomResponse.model_validate(r).model_dump(by_alias=True, mode="json") for r in rooms],
            },
            "pzem": {
                "totalRecords": crud.count_power_readings(db),
                "latest": PowerReadingResponse.model_validate(latest_power).model_dump(mode="json") if latest_power else None,
            },
            "sensors": {
                "totalRecords": crud.count_room_readings(db),
                "latest": [
                    RoomSensorReadingResponse.model_validate(r).model_dump(by_alias=True, mode="json")
                    for r in latest_sensors
                ],
            },
        },
        "timestamp": isoformat_utc(get_utc_datetime()),
    })
